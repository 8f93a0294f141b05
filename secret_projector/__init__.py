"""Project creds repository files into Kubernetes Secrets."""

__version__ = "0.1.0"
