from connectors.desk.desk_client import DESK_CONFIG, ZohoDeskClient

__all__ = [
    "DESK_CONFIG",
    "ZohoDeskClient",
]
