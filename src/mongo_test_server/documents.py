"""Client configuration documents pointing at a test server.

Two layouts are produced: a flat single-host one and a ``sessions`` one
listing hosts, matching what Mongoid 2 and Mongoid 3 style configs expect.
"""

from typing import Any, Dict

import yaml

LOCALHOST = "localhost"


def database_name(name: str) -> str:
    return f"{name}_test_db"


def mongoid_options(port: int, name: str, **overrides: Any) -> Dict[str, Any]:
    options = {
        "host": LOCALHOST,
        "port": port,
        "database": database_name(name),
        "use_utc": False,
        "use_activesupport_time_zone": True,
    }
    options.update(overrides)
    return options


def mongoid3_options(port: int, name: str, **overrides: Any) -> Dict[str, Any]:
    options = {
        "hosts": [f"{LOCALHOST}:{port}"],
        "database": database_name(name),
        "use_utc": False,
        "use_activesupport_time_zone": True,
    }
    options.update(overrides)
    return options


def mongoid_yml(port: int, name: str, **overrides: Any) -> str:
    """Render the single-host document as YAML."""
    options = mongoid_options(port, name, **overrides)
    document = {
        key: options[key]
        for key in ("host", "port", "database", "use_utc", "use_activesupport_time_zone")
    }
    return yaml.safe_dump(document, default_flow_style=False, sort_keys=False)


def mongoid3_yml(port: int, name: str, **overrides: Any) -> str:
    """Render the sessions document as YAML, keeping only the first host."""
    options = mongoid3_options(port, name, **overrides)
    document = {
        "sessions": {
            "default": {
                "hosts": options["hosts"][:1],
                "database": options["database"],
                "use_utc": options["use_utc"],
                "use_activesupport_time_zone": options["use_activesupport_time_zone"],
            }
        }
    }
    return yaml.safe_dump(document, default_flow_style=False, sort_keys=False)
