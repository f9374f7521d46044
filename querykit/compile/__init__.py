"""QueryKit compilation layer: QueryDescriptor → parameterized SQL."""
from querykit.compile.base import CompiledSQL, CompiledWrite, Dialect
from querykit.compile.compiler import SQLCompiler
from querykit.compile.mssql import MSSQLDialect
from querykit.compile.mysql import MySQLDialect
from querykit.compile.oracle import OracleDialect
from querykit.compile.portable import PortableDialect
from querykit.compile.postgres import PostgresDialect
from querykit.compile.registry import DialectFactory
from querykit.compile.sqlite import SQLiteDialect

DialectFactory.register_class("sqlite", SQLiteDialect)
DialectFactory.register_class("postgres", PostgresDialect)
DialectFactory.register_class("mysql", MySQLDialect)
DialectFactory.register_class("mssql", MSSQLDialect)
DialectFactory.register_class("oracle", OracleDialect)

__all__ = [
    "CompiledSQL",
    "CompiledWrite",
    "Dialect",
    "DialectFactory",
    "MSSQLDialect",
    "MySQLDialect",
    "OracleDialect",
    "PortableDialect",
    "PostgresDialect",
    "SQLCompiler",
    "SQLiteDialect",
]
