from pipegate.core.gate import PipelineAccessGate

__version__ = "0.1.0"

__all__ = ["PipelineAccessGate", "__version__"]
