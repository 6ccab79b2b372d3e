# azza_erp/config/company.py
"""
Single source of truth for AZZA company identity.

Everything printed on proforma invoices and monthly statements that is not
user data lives here, already in the ASCII form the PDF fonts can render.
"""

# -----------------------------
# Canonical fields
# -----------------------------
COMPANY_NAME = "AZZA IS MAKINELERI"
COMPANY_LEGAL_SUFFIX = "DERI TEKS. SAN. ve TIC. LTD. STI"
COMPANY_LEGAL_NAME = f"{COMPANY_NAME} {COMPANY_LEGAL_SUFFIX}"

COMPANY_ADDRESS_SHORT = "SUMER Mah. 27/3 Sokak No:4A Zeytinburnu/IST"
COMPANY_ADDRESS = "SUMER Mah. 27/3 Sokak No:4A Zeytinburnu/ISTANBUL"
COMPANY_PHONE = "+905321696098"
COMPANY_TAX_OFFICE = "Zeytinburnu V.D."
COMPANY_ACTIVITY = "Heavy Machinery Import/Export - Zeytinburnu/Istanbul"

# -----------------------------
# Bank table boilerplate
# -----------------------------
BANK_ADDRESS = "ZEYTINBURNU / ISTANBUL TURKEY"
BANK_BRANCH = "39-ZEYTINBURNU BRANCH"
DEFAULT_BANK_HINT = "albaraka"

# -----------------------------
# Proforma defaults
# -----------------------------
DEFAULT_PAYMENT_TERMS = "30% deposit, 70% before delivery"
PROFORMA_VALIDITY_NOTICE = "This proforma invoice is valid for 30 days from the issue date."

# -----------------------------
# Statement boilerplate (Turkish, ASCII-folded)
# -----------------------------
STATEMENT_TITLE = "AYLIK HESAP EKSTRESI"
STATEMENT_DISCLAIMER = "Bu ekstre elektronik olarak olusturulmustur. Mali musavir onayina tabidir."


def company_context() -> dict:
    """Identity block for JSON responses and document headers."""
    return {
        "name": COMPANY_NAME,
        "legal_name": COMPANY_LEGAL_NAME,
        "address": COMPANY_ADDRESS,
        "phone": COMPANY_PHONE,
        "tax_office": COMPANY_TAX_OFFICE,
        "activity": COMPANY_ACTIVITY,
    }
