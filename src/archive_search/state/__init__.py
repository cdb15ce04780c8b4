from archive_search.state.checkpoint import Checkpointer, parse_record_id

__all__ = [
    "Checkpointer",
    "parse_record_id",
]
