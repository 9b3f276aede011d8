"""Schedule placement advisor for field-service crews.

Modules:
- config: load and validate configuration (JSON or YAML)
- errors: exception hierarchy
- domain: snapshot types, SQL collaborator, repositories
- services: calendar, workload, due penalty, feasibility, travel
- engine: candidate ranking, suggestion assembly, advisor entrypoints
- io: CSV import/export helpers
- cli: command-line interface entrypoints
"""

__version__ = "0.1.0"

__all__ = [
    "config",
    "errors",
    "domain",
    "services",
    "engine",
    "io",
    "cli",
]
