"""
Static database-type catalog.

Maps a database-type tag (``"PostgreSQL"``, ``"MongoDB"``...) to its palette
section, category label and icon path. Lookups of unknown types return
``None`` rather than raising.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class DbTypeItem:
    type: str
    icon: str


@dataclass(frozen=True)
class DbSection:
    key: str
    label: str
    items: Tuple[DbTypeItem, ...]


_ICON_DIR = "/icons/databases"


def _item(db_type: str, filename: str) -> DbTypeItem:
    return DbTypeItem(type=db_type, icon=f"{_ICON_DIR}/{filename}")


DB_SECTIONS: Tuple[DbSection, ...] = (
    DbSection(
        key="sql",
        label="SQL",
        items=(
            _item("PostgreSQL", "postgresql.svg"),
            _item("MySQL", "mysql.svg"),
            _item("Oracle", "oracle.svg"),
            _item("SQL Server", "sql-server.svg"),
            _item("Azure SQL Server", "azure-sql-server.png"),
            _item("Databricks", "databricks.png"),
            _item("DB2", "db2.png"),
            _item("DuckDB", "duckdb.png"),
            _item("Google BigQuery", "bigquery.png"),
            _item("Snowflake", "snowflake.png"),
            _item("Vertica", "vertica.svg"),
        ),
    ),
    DbSection(
        key="nosql",
        label="NoSQL",
        items=(
            _item("Cassandra", "cassandra.png"),
            _item("Couchbase", "couchbase.png"),
            _item("MongoDB", "mongodb.png"),
            _item("Redis", "redis.svg"),
            _item("Timestream", "timestream.png"),
        ),
    ),
    DbSection(
        key="analytical",
        label="Analytical",
        items=(
            _item("Snowflake", "snowflake.png"),
            _item("Vertica", "vertica.svg"),
            _item("Databricks", "databricks.png"),
            _item("Greenplum", "greenplum.svg"),
        ),
    ),
    DbSection(
        key="files",
        label="Files",
        items=(_item("CSV Basic", "csv-basic.png"),),
    ),
    DbSection(
        key="bigdata",
        label="Big Data",
        items=(
            _item("Apache Hive 4+", "apache-hive.png"),
            _item("Cloudera Impala", "cloudera-impala.png"),
            _item("Apache Spark", "apache-spark.png"),
            _item("Apache Phoenix", "apache-phoenix.png"),
        ),
    ),
    DbSection(
        key="fulltext",
        label="Full-text Search",
        items=(
            _item("Elasticsearch", "elasticsearch.svg"),
            _item("Solr", "solr.svg"),
        ),
    ),
    DbSection(
        key="graph",
        label="Graph",
        items=(
            _item("Neo4j", "neo4j.png"),
            _item("OrientDB", "orientdb.png"),
        ),
    ),
)

# Connection categories differ slightly from palette sections: warehouse-style
# engines are grouped as Analytical and graph stores get their own label.
_CATEGORY_BY_TYPE: Dict[str, str] = {
    "PostgreSQL": "SQL",
    "MySQL": "SQL",
    "Oracle": "SQL",
    "SQL Server": "SQL",
    "Azure SQL Server": "SQL",
    "DB2": "SQL",
    "DuckDB": "SQL",
    "Databricks": "Analytical",
    "Google BigQuery": "Analytical",
    "Snowflake": "Analytical",
    "Vertica": "Analytical",
    "Greenplum": "Analytical",
    "Cassandra": "NoSQL",
    "Couchbase": "NoSQL",
    "MongoDB": "NoSQL",
    "Redis": "NoSQL",
    "Timestream": "NoSQL",
    "CSV Basic": "Files",
    "Apache Hive 4+": "Big Data",
    "Cloudera Impala": "Big Data",
    "Apache Spark": "Big Data",
    "Apache Phoenix": "Big Data",
    "Elasticsearch": "Full-text Search",
    "Solr": "Full-text Search",
    "Neo4j": "Graph Database",
    "OrientDB": "Graph Database",
}

DEFAULT_CATEGORY = "SQL"


def with_base_path(path: str, base_path: str = "/dmp") -> str:
    """Prefix an asset path with the app base path, never twice."""
    base = (base_path or "").rstrip("/")
    if not base:
        return path
    if path == base or path.startswith(f"{base}/"):
        return path
    if path.startswith("/"):
        return f"{base}{path}"
    return f"{base}/{path}"


def all_db_types() -> List[str]:
    """Every known database type, in palette order, without duplicates."""
    seen: List[str] = []
    for section in DB_SECTIONS:
        for item in section.items:
            if item.type not in seen:
                seen.append(item.type)
    return seen


def is_known_db_type(db_type: Optional[str]) -> bool:
    return bool(db_type) and db_type in _CATEGORY_BY_TYPE


def get_db_icon_for_type(db_type: Optional[str], base_path: str = "/dmp") -> Optional[str]:
    """Icon path for a database type, or None when the type is unknown."""
    if not db_type:
        return None
    for section in DB_SECTIONS:
        for item in section.items:
            if item.type == db_type:
                return with_base_path(item.icon, base_path)
    return None


def get_category(db_type: str) -> str:
    """Connection category label; unknown types fall back to SQL."""
    return _CATEGORY_BY_TYPE.get(db_type, DEFAULT_CATEGORY)


def make_slug(name: str, db_type: str) -> str:
    """URL slug for a connection, e.g. ``postgresql-crm-main``."""
    raw = f"{db_type}-{name}".strip().lower()
    raw = re.sub(r"\s+", "-", raw)
    return re.sub(r"[^a-z0-9\-]", "", raw)


def sections_payload(base_path: str = "/dmp") -> List[Dict[str, object]]:
    """Palette sections serialized for the front end."""
    return [
        {
            "key": section.key,
            "label": section.label,
            "items": [
                {"type": item.type, "icon": with_base_path(item.icon, base_path)}
                for item in section.items
            ],
        }
        for section in DB_SECTIONS
    ]
