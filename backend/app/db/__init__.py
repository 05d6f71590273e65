"""Database engine, query helpers, and CRUD primitives."""
