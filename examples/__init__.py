"""Example applications built on mongorepo."""
