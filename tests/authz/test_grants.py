import tempfile
import textwrap
import unittest
from pathlib import Path

import yaml

from pipegate.authz.authorizer import check_pipeline
from pipegate.authz.grants import Grant, GrantAuthorizer, grants_from_dict, load_grant_authorizer
from pipegate.core.context import CallContext
from pipegate.core.errors import CancellationFailure, ForbiddenError, NotFoundError, ValidationError
from pipegate.core.types import Permission, Principal, Resource, ResourceType, Scope, Session

GRANTS_YAML = textwrap.dedent(
    """
    version: "0.1"
    admins: ["root"]
    grants:
      - principal: alice
        scope: org
        permissions: [pipeline_view, pipeline_execute]
      - principal: bob
        scope: org/repo1
        pipelines: ["deploy-*"]
        permissions: [pipeline_view]
      - principal: "*"
        scope: public
        permissions: [pipeline_view]
    """
)


def _session(uid: str, admin: bool = False) -> Session:
    return Session(principal=Principal(id=1, uid=uid, admin=admin))


class TestGrantAuthorizer(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        p = Path(self._td.name) / "grants.yml"
        p.write_text(GRANTS_YAML, encoding="utf-8")
        self.authz = load_grant_authorizer(p)
        self.ctx = CallContext()

    def tearDown(self) -> None:
        self._td.cleanup()

    def _allowed(self, uid: str, repo_path: str, pipeline: str, perm: Permission, admin: bool = False) -> bool:
        try:
            check_pipeline(self.ctx, self.authz, _session(uid, admin), repo_path, pipeline, perm)
        except ForbiddenError:
            return False
        return True

    def test_space_grant_covers_nested_repos(self) -> None:
        self.assertTrue(self._allowed("alice", "org/repo1", "build", Permission.PIPELINE_EXECUTE))
        self.assertTrue(self._allowed("alice", "org/team/repo9", "build", Permission.PIPELINE_VIEW))
        self.assertFalse(self._allowed("alice", "other/repo1", "build", Permission.PIPELINE_VIEW))
        self.assertFalse(self._allowed("alice", "org/repo1", "build", Permission.PIPELINE_DELETE))

    def test_pipeline_patterns(self) -> None:
        self.assertTrue(self._allowed("bob", "org/repo1", "deploy-prod", Permission.PIPELINE_VIEW))
        self.assertFalse(self._allowed("bob", "org/repo1", "build", Permission.PIPELINE_VIEW))
        self.assertFalse(self._allowed("bob", "org/repo2", "deploy-prod", Permission.PIPELINE_VIEW))

    def test_wildcard_principal(self) -> None:
        self.assertTrue(self._allowed("anyone", "public/site", "build", Permission.PIPELINE_VIEW))
        self.assertFalse(self._allowed("anyone", "public/site", "build", Permission.PIPELINE_EXECUTE))

    def test_admins(self) -> None:
        self.assertTrue(self._allowed("root", "secret/repo", "build", Permission.PIPELINE_DELETE))
        self.assertTrue(self._allowed("carol", "secret/repo", "build", Permission.PIPELINE_DELETE, admin=True))

    def test_forbidden_error_details(self) -> None:
        with self.assertRaises(ForbiddenError) as cm:
            check_pipeline(self.ctx, self.authz, _session("mallory"), "org/repo1", "build", Permission.PIPELINE_VIEW)
        self.assertEqual(cm.exception.code, "authz.forbidden")

    def test_unknown_pipeline_raises_not_found(self) -> None:
        catalog = {"org/repo1": ("build",)}
        grants, _admins = grants_from_dict(yaml.safe_load(GRANTS_YAML))
        authz = GrantAuthorizer(grants, pipeline_catalog=catalog.get)
        with self.assertRaises(NotFoundError):
            check_pipeline(self.ctx, authz, _session("alice"), "org/repo1", "nope", Permission.PIPELINE_VIEW)
        check_pipeline(self.ctx, authz, _session("alice"), "org/repo1", "build", Permission.PIPELINE_VIEW)

    def test_repo_scope_check_ignores_catalog(self) -> None:
        authz = GrantAuthorizer(
            [Grant(principal="alice", scope="org", permissions=frozenset({Permission.REPO_VIEW}))],
            pipeline_catalog=lambda _path: (),
        )
        ok = authz.check(
            self.ctx,
            _session("alice"),
            Scope(space_path="org", repo="repo1"),
            Resource(type=ResourceType.REPO),
            Permission.REPO_VIEW,
        )
        self.assertTrue(ok)

    def test_cancelled_context(self) -> None:
        ctx = CallContext()
        ctx.cancel()
        with self.assertRaises(CancellationFailure):
            check_pipeline(ctx, self.authz, _session("alice"), "org/repo1", "build", Permission.PIPELINE_VIEW)

    def test_invalid_repo_path(self) -> None:
        with self.assertRaises(ValidationError) as cm:
            check_pipeline(self.ctx, self.authz, _session("alice"), "//", "build", Permission.PIPELINE_VIEW)
        self.assertEqual(cm.exception.code, "path.invalid")

    def test_invalid_grants_file(self) -> None:
        p = Path(self._td.name) / "bad.yml"
        p.write_text("grants:\n  - principal: alice\n    scope: org\n    permissions: [pipeline_fly]\n", encoding="utf-8")
        with self.assertRaises(ValidationError) as cm:
            load_grant_authorizer(p)
        self.assertEqual(cm.exception.code, "config.invalid")
        self.assertTrue(cm.exception.data["errors"])


if __name__ == "__main__":
    unittest.main()
