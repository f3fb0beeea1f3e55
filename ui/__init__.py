"""UI layer -- Rich dashboard and output formatters."""

from .dashboard import (
    ProgressDisplay,
    console,
    create_sparkline,
    print_final_results,
    print_header,
    print_latency_details,
    print_speed_result,
)
from .output import create_result_json, format_text_result

__all__ = [
    "ProgressDisplay",
    "console",
    "create_result_json",
    "create_sparkline",
    "format_text_result",
    "print_final_results",
    "print_header",
    "print_latency_details",
    "print_speed_result",
]
