"""Campus Portal — examination administration backend.

Departments, faculty, students and classes for a campus, with bulk
spreadsheet import/export, an audit trail of admin actions, and a live
event stream that keeps admin dashboards in sync.
"""

__version__ = "0.1.0"
