"""Infrastructure layer: database, repositories and nginx publishing."""
