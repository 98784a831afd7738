"""
Visitor region preference – read from / written to cookies, with an
optional IP geolocation fallback.
"""

import sys
from dataclasses import dataclass
from typing import Mapping, Optional

import requests

from storefront.config import (
    COUNTRY_CODE_COOKIE,
    DEFAULT_COUNTRY_CODE,
    GEOIP_TIMEOUT_SECONDS,
    GEOIP_URL,
    LOCATION_COOKIE,
    LOCATION_INTERNATIONAL,
    LOCATION_PORTUGAL,
    LOCATIONS,
    MEDICAL_CONFIRMED_COOKIE,
    PREFERENCE_MAX_AGE,
)


@dataclass(frozen=True)
class LocationPreference:
    location: Optional[str] = None
    country_code: Optional[str] = None
    medical_professional_confirmed: bool = False

    @property
    def is_portugal(self) -> bool:
        return self.location == LOCATION_PORTUGAL

    @property
    def is_international(self) -> bool:
        return self.location == LOCATION_INTERNATIONAL

    @property
    def needs_location_selection(self) -> bool:
        return self.location is None

    @property
    def needs_medical_confirmation(self) -> bool:
        return self.is_international and not self.medical_professional_confirmed

    @property
    def can_access_prices(self) -> bool:
        return self.is_international and self.medical_professional_confirmed

    def to_dict(self) -> dict:
        return {
            "location": self.location,
            "countryCode": self.country_code,
            "isMedicalProfessionalConfirmed": self.medical_professional_confirmed,
            "needsLocationSelection": self.needs_location_selection,
            "needsMedicalConfirmation": self.needs_medical_confirmation,
            "canAccessPrices": self.can_access_prices,
        }


def read_preference(cookies: Mapping[str, str]) -> LocationPreference:
    """Build the preference from stored cookies; unknown regions read as unset."""
    location = cookies.get(LOCATION_COOKIE)
    if location not in LOCATIONS:
        location = None
    return LocationPreference(
        location=location,
        country_code=cookies.get(COUNTRY_CODE_COOKIE) or None,
        medical_professional_confirmed=cookies.get(MEDICAL_CONFIRMED_COOKIE) == "true",
    )


def detect_location(ip: Optional[str], session=None) -> LocationPreference:
    """Geolocate *ip*; anything but Portugal, or any failure, is international."""
    http = session or requests
    try:
        resp = http.get(GEOIP_URL.format(ip=ip or ""), timeout=GEOIP_TIMEOUT_SECONDS)
        resp.raise_for_status()
        country_code = (resp.json().get("country_code") or DEFAULT_COUNTRY_CODE).upper()
    except (requests.RequestException, ValueError) as e:
        print(f"[WARN] Could not detect location by IP, defaulting to international: {e}",
              file=sys.stderr)
        country_code = DEFAULT_COUNTRY_CODE
    location = LOCATION_PORTUGAL if country_code == "PT" else LOCATION_INTERNATIONAL
    return LocationPreference(location=location, country_code=country_code)


def apply_preference(response, pref: LocationPreference) -> None:
    """Persist *pref* on a Flask response."""
    if pref.location is None:
        clear_preference(response)
        return
    response.set_cookie(LOCATION_COOKIE, pref.location, max_age=PREFERENCE_MAX_AGE, samesite="Lax")
    if pref.country_code:
        response.set_cookie(COUNTRY_CODE_COOKIE, pref.country_code,
                            max_age=PREFERENCE_MAX_AGE, samesite="Lax")
    if pref.medical_professional_confirmed:
        response.set_cookie(MEDICAL_CONFIRMED_COOKIE, "true",
                            max_age=PREFERENCE_MAX_AGE, samesite="Lax")
    else:
        response.delete_cookie(MEDICAL_CONFIRMED_COOKIE)


def clear_preference(response) -> None:
    for name in (LOCATION_COOKIE, COUNTRY_CODE_COOKIE, MEDICAL_CONFIRMED_COOKIE):
        response.delete_cookie(name)
