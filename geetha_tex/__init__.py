"""Production dashboard for a textile operation: batches per machine,
FTotal/average metrics, monthly reports, bills and exports."""

__version__ = "1.0.0"
