"""Role-scoped access: one rule table, one evaluation function, one query predicate."""
