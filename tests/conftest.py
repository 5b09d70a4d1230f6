"""
Pytest configuration and fixtures for dbmcp tests.
"""
import logging
import re
import sqlite3

import pytest

from dbmcp.database.datasource import CatalogReader, DataSourceContext
from dbmcp.database.dialects import DriverType, PlaceholderStyle
from dbmcp.database.query_builder import QueryBuilder
from dbmcp.logging_setup import PACKAGE_LOGGER


SAMPLE_SCHEMA = """
CREATE TABLE customers (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT,
    created_at TEXT
);
CREATE UNIQUE INDEX idx_customers_email ON customers(email);

CREATE TABLE orders (
    id INTEGER PRIMARY KEY,
    customer_id INTEGER NOT NULL REFERENCES customers(id),
    total REAL,
    status TEXT DEFAULT 'new'
);
CREATE INDEX idx_orders_status ON orders(status);

CREATE VIEW open_orders AS SELECT id, total FROM orders WHERE status = 'new';

CREATE TRIGGER trg_orders_touch AFTER UPDATE ON orders
BEGIN
    UPDATE customers SET created_at = created_at WHERE id = NEW.customer_id;
END;

INSERT INTO customers (id, name, email, created_at) VALUES
    (1, 'Alice', 'alice@example.com', '2024-01-05'),
    (2, 'Bob', NULL, '2024-02-11'),
    (3, 'Carol', 'carol@example.com', '2024-03-20');

INSERT INTO orders (id, customer_id, total, status) VALUES
    (1, 1, 10.5, 'new'),
    (2, 1, 99.0, 'shipped'),
    (3, 2, 5.25, 'new'),
    (4, 3, 42.0, 'cancelled'),
    (5, 3, 18.75, 'shipped');
"""


def placeholder_numbers(driver: DriverType, sql: str):
    """
    Placeholder markers found in SQL text.

    Numbered styles return the distinct indices, in ascending order;
    anonymous ``?`` markers return 1..n by occurrence.
    """
    style = QueryBuilder(driver).dialect.placeholder_style
    if style is PlaceholderStyle.QMARK:
        return list(range(1, sql.count("?") + 1))
    pattern = {
        PlaceholderStyle.NAMED: r"@p(\d+)",
        PlaceholderStyle.NUMBERED: r"\$(\d+)",
        PlaceholderStyle.NUMERIC: r":(\d+)",
    }[style]
    return sorted({int(n) for n in re.findall(pattern, sql)})


@pytest.fixture(params=list(DriverType), ids=lambda d: d.value)
def driver(request):
    """Every supported driver."""
    return request.param


@pytest.fixture
def builder(driver):
    """QueryBuilder for each supported driver."""
    return QueryBuilder(driver)


@pytest.fixture
def sqlserver_builder():
    return QueryBuilder(DriverType.SQLSERVER)


@pytest.fixture
def postgres_builder():
    return QueryBuilder(DriverType.POSTGRESQL)


@pytest.fixture
def mysql_builder():
    return QueryBuilder(DriverType.MYSQL)


@pytest.fixture
def oracle_builder():
    return QueryBuilder(DriverType.ORACLE)


@pytest.fixture
def sqlite_builder():
    return QueryBuilder(DriverType.SQLITE)


@pytest.fixture
def sqlite_db():
    """In-memory SQLite database with customers, orders, a view and a trigger."""
    connection = sqlite3.connect(":memory:")
    connection.executescript(SAMPLE_SCHEMA)
    yield connection
    connection.close()


@pytest.fixture
def context(sqlite_db):
    """Datasource context bound to the sample SQLite database."""
    ctx = DataSourceContext(DriverType.SQLITE, sqlite_db)
    yield ctx
    ctx.disconnect()


@pytest.fixture
def reader(context):
    return CatalogReader(context)


@pytest.fixture
def package_logger():
    """Package logger, with level and handlers restored after the test."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    level, handlers = logger.level, list(logger.handlers)
    yield logger
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in logger.handlers:
            logger.addHandler(handler)
    logger.setLevel(level)
