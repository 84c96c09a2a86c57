"""Storage layer for refbuild: ORM schema, repositories, engine setup."""
