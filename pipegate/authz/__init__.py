from .authorizer import Authorizer, check, check_pipeline
from .grants import Grant, GrantAuthorizer, load_grant_authorizer

__all__ = ["Authorizer", "check", "check_pipeline", "Grant", "GrantAuthorizer", "load_grant_authorizer"]
