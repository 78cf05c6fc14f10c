"""
Construction Kernel - hierarchical progress and schedule-risk engine.

Manages construction work as a four-level hierarchy
(Project -> Unit -> Category -> TeamAssignment) with:
- Bottom-up progress aggregation with a synchronous cascade
- A four-state assignment lifecycle with re-openable DONE
- Read-only schedule-risk scanning (delayed / imminent work)
- Template expansion and unit cloning with per-item warnings
"""

__version__ = "0.1.0"
