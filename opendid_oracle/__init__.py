"""In-memory model of the opendid oracle program: settings, fees, job mappings, requests and claims."""

__version__ = "0.1.0"