"""
Swarm Forge - Directive-driven generative swarm orchestration.
"""

__version__ = "0.1.0"

from .orchestration import MissionControl, MissionReport
from .ui import ui, ForgeUI

__all__ = ["MissionControl", "MissionReport", "ui", "ForgeUI", "__version__"]
