"""Application configuration via Pydantic Settings."""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_AFTERMARKET_BRANDS = (
    "CTR,CTR OEM,555,FEBEST,MASUMA,GMB,ASHIKA,NIPPARTS,JAPANPARTS,BLUE PRINT,"
    "OPTIMAL,MEYLE,LEMFORDER,MOOG,DELPHI,TRW,SIDEM,RTS,OCAP,BIRTH,FORMPART,MAPCO"
)


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    FRONTEND_URL: str = "http://localhost:3000"

    # Search
    MIN_QUERY_LENGTH: int = 3
    RESULT_LIMIT: int = 60
    HTTP_TIMEOUT_SECONDS: float = 30.0
    # Upper bound for a single supplier inside one search
    ADAPTER_TIMEOUT_SECONDS: float = 25.0

    # Exchange rates
    RATES_URL: str = "https://api.frankfurter.app/latest?from=EUR&to=JPY,USD"

    # Impex Japan (REST/JSON)
    IMPEX_BASE_URL: str = "https://www.impex-jp.com"
    IMPEX_API_KEY: str = ""

    # APEC Dubai (token auth REST)
    APEC_BASE_URL: str = "https://api.apecauto.com"
    APEC_USERNAME: str = ""
    APEC_PASSWORD: str = ""

    # Emex Dubai (SOAP)
    EMEX_SOAP_URL: str = "https://soap.emexdwc.ae/service.asmx"
    EMEX_NAMESPACE: str = "https://soap.emexdwc.ae/"
    EMEX_USER: str = ""
    EMEX_PASS: str = ""

    # Stimo / OEM Japan Parts (HTML dealer portal)
    STIMO_BASE_URL: str = "https://dealers.oemjapanparts.com"
    STIMO_EMAIL: str = ""
    STIMO_PASS: str = ""

    # Thunder / PitMax (string-table RPC)
    THUNDER_BASE_URL: str = "https://pitmaxauto.com"
    THUNDER_USER: str = ""
    THUNDER_PASS: str = ""

    # Rotinger (SOAP price service)
    ROTINGER_ENDPOINT: str = "http://b2b.rotinger.pl/ProductWS/services/ProductServicePort"
    ROTINGER_LOGIN: str = ""
    ROTINGER_PASSWORD: str = ""

    # Brands that reuse OEM numbers but are not original parts (Emex filter)
    AFTERMARKET_BRANDS: str = DEFAULT_AFTERMARKET_BRANDS

    def get_aftermarket_brands(self) -> List[str]:
        """Parse AFTERMARKET_BRANDS into an upper-cased list.

        Returns:
            List of brand names, empty if AFTERMARKET_BRANDS is blank
        """
        if not self.AFTERMARKET_BRANDS:
            return []
        return [b.strip().upper() for b in self.AFTERMARKET_BRANDS.split(",") if b.strip()]


settings = Settings()
