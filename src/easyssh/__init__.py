"""easyssh: compose host discovery, filtering and execution from short expressions."""

__version__ = "0.3.0"
