"""Runtime: document validation, workspace aggregation and the service facade."""
