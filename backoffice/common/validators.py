"""
Validators and reference tables for Indian GST
"""
import re
from typing import Optional


# GST state codes keyed by upper-case state / UT name
GST_STATE_CODES = {
    'JAMMU AND KASHMIR': '01', 'HIMACHAL PRADESH': '02', 'PUNJAB': '03',
    'CHANDIGARH': '04', 'UTTARAKHAND': '05', 'UTTRAKHNAD': '05', 'HARYANA': '06',
    'DELHI': '07', 'RAJASTHAN': '08', 'UTTAR PRADESH': '09', 'BIHAR': '10',
    'SIKKIM': '11', 'ARUNACHAL PRADESH': '12', 'NAGALAND': '13', 'MANIPUR': '14',
    'MIZORAM': '15', 'TRIPURA': '16', 'MEGHALAYA': '17', 'ASSAM': '18',
    'WEST BENGAL': '19', 'JHARKHAND': '20', 'ODISHA': '21', 'CHHATTISGARH': '22',
    'MADHYA PRADESH': '23', 'GUJARAT': '24', 'MAHARASHTRA': '27', 'KARNATAKA': '29',
    'GOA': '30', 'KERALA': '32', 'TAMIL NADU': '33', 'PUDUCHERRY': '34',
    'TELANGANA': '36', 'ANDHRA PRADESH': '37', 'LADAKH': '38',
}

UNKNOWN_STATE_CODE = '00'

GSTIN_PATTERN = r'^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$'


def get_state_code(state_name: Optional[str]) -> str:
    """
    Translate a state name into its 2-digit GST state code.
    Unknown or empty states map to '00'.
    """
    if not state_name:
        return UNKNOWN_STATE_CODE
    cleaned = re.sub(r'\s+', ' ', state_name.replace('&', 'AND')).strip().upper()
    return GST_STATE_CODES.get(cleaned, UNKNOWN_STATE_CODE)


def validate_gstin(gstin: str) -> bool:
    """
    Validate the shape of a GSTIN.
    15 chars: state code (2) + PAN (10) + entity + 'Z' + checksum
    """
    if not gstin:
        return False
    return re.match(GSTIN_PATTERN, gstin.strip().upper()) is not None


def state_code_from_gstin(gstin: Optional[str]) -> Optional[str]:
    """The first two digits of a GSTIN are the state code."""
    if gstin and validate_gstin(gstin):
        return gstin.strip()[:2]
    return None
