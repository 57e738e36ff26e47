"""Version information for conformqa."""

__version__ = "0.1.0"

# Contract version of integration.yml this CLI understands. An
# integration.yml declaring any other spec_version is rejected.
SPEC_VERSION = "0.1.0"
