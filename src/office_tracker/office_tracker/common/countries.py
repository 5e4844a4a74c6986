"""Supported countries: ISO codes for the holiday API, bundled holiday lists
and company suggestions used during onboarding."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ..core.constants import DEFAULT_COUNTRY


@dataclass(frozen=True)
class CountryInfo:
    key: str
    name: str
    iso_code: str
    static_holidays: Tuple[str, ...]
    popular_companies: Tuple[str, ...]


COUNTRIES = {
    "australia": CountryInfo(
        key="australia",
        name="Australia",
        iso_code="AU",
        static_holidays=(
            "2024-01-01", "2024-01-26", "2024-03-29", "2024-04-01", "2024-04-25",
            "2024-06-10", "2024-12-25", "2024-12-26",
            "2025-01-01", "2025-01-27", "2025-04-18", "2025-04-21", "2025-04-25",
            "2025-06-09", "2025-12-25", "2025-12-26",
        ),
        popular_companies=(
            "Commonwealth Bank", "Westpac", "ANZ", "NAB", "Telstra",
            "BHP", "Rio Tinto", "Woolworths Group", "Coles Group", "Wesfarmers",
            "Macquarie Group", "CSL Limited", "Qantas", "Atlassian", "Canva",
            "Xero Australia", "Optus", "Medibank", "Suncorp", "Deloitte Digital Australia",
        ),
    ),
    "india": CountryInfo(
        key="india",
        name="India",
        iso_code="IN",
        static_holidays=(
            "2024-01-26", "2024-08-15", "2024-10-02", "2024-10-24", "2024-11-12",
            "2025-01-26", "2025-08-15", "2025-10-02", "2025-10-23", "2025-11-01",
        ),
        popular_companies=(
            "Reliance Industries", "Tata Consultancy Services (TCS)", "Infosys", "HDFC Bank", "ICICI Bank",
            "State Bank of India", "Bharti Airtel", "Hindustan Unilever", "Wipro", "HCL Technologies",
            "Larsen & Toubro (L&T)", "Mahindra & Mahindra", "Zomato", "Flipkart", "Swiggy",
        ),
    ),
    "usa": CountryInfo(
        key="usa",
        name="United States",
        iso_code="US",
        static_holidays=(
            "2024-01-01", "2024-07-04", "2024-11-28", "2024-12-25",
            "2025-01-01", "2025-07-04", "2025-11-27", "2025-12-25",
        ),
        popular_companies=(
            "Apple", "Microsoft", "Amazon", "Google (Alphabet)", "Meta (Facebook)",
            "Tesla", "JPMorgan Chase", "Walmart", "IBM", "Netflix",
            "Oracle", "Salesforce", "Adobe", "Cisco", "Goldman Sachs",
        ),
    ),
    "uk": CountryInfo(
        key="uk",
        name="United Kingdom",
        iso_code="GB",
        static_holidays=(
            "2024-01-01", "2024-03-29", "2024-04-01", "2024-05-06", "2024-05-27",
            "2024-08-26", "2024-12-25", "2024-12-26",
            "2025-01-01", "2025-04-18", "2025-04-21", "2025-05-05", "2025-05-26",
            "2025-08-25", "2025-12-25", "2025-12-26",
        ),
        popular_companies=(
            "BP", "Shell", "HSBC", "Barclays", "Lloyds Banking Group",
            "NatWest Group", "Tesco", "Unilever", "AstraZeneca", "GSK",
            "Vodafone", "BT Group", "Rolls-Royce", "BAE Systems", "ARM Holdings",
        ),
    ),
    "canada": CountryInfo(
        key="canada",
        name="Canada",
        iso_code="CA",
        static_holidays=(
            "2024-01-01", "2024-07-01", "2024-09-02", "2024-10-14", "2024-12-25",
            "2025-01-01", "2025-07-01", "2025-09-01", "2025-10-13", "2025-12-25",
        ),
        popular_companies=(
            "Royal Bank of Canada", "Toronto-Dominion Bank", "Bank of Nova Scotia", "Bank of Montreal",
            "Canadian Imperial Bank of Commerce", "Shopify", "Enbridge", "Manulife Financial",
            "Sun Life Financial", "BCE (Bell Canada)", "Rogers Communications", "Telus",
            "Thomson Reuters", "OpenText", "CGI Inc.",
        ),
    ),
}


def resolve_country(key: Optional[str]) -> CountryInfo:
    """Country by key; unknown or missing keys fall back to the default country."""
    normalized = (key or "").strip().lower()
    return COUNTRIES.get(normalized) or COUNTRIES[DEFAULT_COUNTRY]


def country_from_iso(code: Optional[str]) -> Optional[CountryInfo]:
    wanted = (code or "").strip().upper()
    for info in COUNTRIES.values():
        if info.iso_code == wanted:
            return info
    return None
