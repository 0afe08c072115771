"""Copilot feature tracker.

Builds stable-release catalogs for VS Code and the Copilot Chat extension
from GitHub Releases, and uses them to backfill the minimum plugin version
of recorded feature milestones.
"""

__version__ = "0.1.0"
