from connectors.people.people_client import (
    COMMON_PEOPLE_MODULES,
    PEOPLE_CONFIG,
    ZohoPeopleClient,
    extract_people_records,
    parse_people_page,
)

__all__ = [
    "COMMON_PEOPLE_MODULES",
    "PEOPLE_CONFIG",
    "ZohoPeopleClient",
    "extract_people_records",
    "parse_people_page",
]
