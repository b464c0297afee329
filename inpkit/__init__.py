"""Small network programs: IRC and DNS servers, archive extraction and TCP helpers."""

__version__ = "0.1.0"