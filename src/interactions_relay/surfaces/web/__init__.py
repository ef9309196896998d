"""FastAPI interactions endpoint."""
