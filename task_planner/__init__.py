"""
Task Planner - Duplicate Cleanup Package

The reconciliation engine behind the planner's "clean up duplicates"
screen. It finds tasks, projects and categories that were entered
(or imported) more than once and removes the extras.

DESIGN PRINCIPLES:
1. Engine suggests a keeper → Human confirms → System deletes
2. Exact matching only - no guessing about "similar" records
3. One failed delete never aborts a cleanup run
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Task Planner Team"
