"""Engine identifier normalization.

Canonical engine IDs (internal, lowercase):
- "mysql" - MySQL, MariaDB and Aurora MySQL
- "postgres" - PostgreSQL and Aurora PostgreSQL

Example:
    >>> normalize_engine("PostgreSQL")
    'postgres'
    >>> normalize_engine("  aurora-mysql ")
    'mysql'
"""

# Alias mappings: user-friendly names -> canonical engine ID
ENGINE_ALIASES: dict[str, str] = {
    # PostgreSQL aliases
    "postgresql": "postgres",
    "postgres": "postgres",
    "pg": "postgres",
    "aurora-postgresql": "postgres",
    # MySQL aliases
    "mysql": "mysql",
    "mariadb": "mysql",
    "aurora-mysql": "mysql",
    "aurora": "mysql",
}


def normalize_engine(value: str) -> str:
    """Normalize an engine value to its canonical form.

    Unknown values pass through lowercased and stripped; validation happens
    when the value is parsed into an ``Engine``.
    """
    cleaned = value.strip().lower()
    return ENGINE_ALIASES.get(cleaned, cleaned)
