from storage.results import ResultsWorkspace

__all__ = ["ResultsWorkspace"]
