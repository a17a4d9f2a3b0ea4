"""
tablebuddy - configuration-driven table orchestration engine
"""

from tablebuddy.engine.orchestrator import TableOrchestrator
from tablebuddy.models.config import TableConfiguration

__version__ = "0.1.0"

__all__ = ["TableOrchestrator", "TableConfiguration", "__version__"]
