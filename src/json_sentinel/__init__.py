"""JSON quality engine: repair, analyze, score and convert JSON documents."""

__version__ = "0.3.0"

from .analyzer import JsonAnalyzer, analyze, query, result_to_json_dict  # noqa: E402
from .convert import convert  # noqa: E402
from .repair import RepairEngine, repair  # noqa: E402

__all__ = [
    "JsonAnalyzer",
    "RepairEngine",
    "analyze",
    "convert",
    "query",
    "repair",
    "result_to_json_dict",
    "__version__",
]
