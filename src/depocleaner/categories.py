"""Target directory definitions for depocleaner."""

UNKNOWN_TYPE = "Unknown"

# Directory basename -> ecosystem label. Exact, case-sensitive matches only.
TARGET_DIRECTORIES: dict[str, str] = {
    "node_modules": "Node.js",  # npm / yarn / pnpm installs
    "node_modules_cache": "Node.js",
    "vendor": "Go/PHP",  # go mod vendor, composer
    ".venv": "Python",  # virtual environments
    "venv": "Python",
    "__pycache__": "Python",  # bytecode cache
    "target": "Rust",  # cargo build output
}


def is_target(name: str) -> bool:
    """Return True if a directory basename is a cleanup target."""
    return name in TARGET_DIRECTORIES


def classify_type(name: str) -> str:
    """Return the ecosystem label for a directory basename."""
    return TARGET_DIRECTORIES.get(name, UNKNOWN_TYPE)


def get_ecosystems() -> list[str]:
    """Distinct ecosystem labels, sorted."""
    return sorted(set(TARGET_DIRECTORIES.values()))
