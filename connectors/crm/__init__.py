from connectors.crm.crm_client import CRM_CONFIG, ZohoCrmClient, parse_crm_page

__all__ = [
    "CRM_CONFIG",
    "ZohoCrmClient",
    "parse_crm_page",
]
