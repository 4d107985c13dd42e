"""User records over HTTP, stored in a Cassandra/ScyllaDB table."""

__version__ = "0.1.0"
