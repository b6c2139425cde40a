"""
Section schemas (first validation pass).

One pydantic model per section. These check shape, types, closed value
sets, lengths, ranges, decimal precision and the timestamp and month/year
patterns. Regulatory dependencies between fields live in the business rules,
not here.

`lookup_section_schema` is the lookup the validation runner consumes. It is
advisory: a section without a schema is simply not checked in this pass.
"""

from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional, Tuple, Union

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from domain import enumerations as codes
from domain.formatting import (
    MONTH_YEAR_PATTERN,
    TIMESTAMP_PATTERN,
    decimal_places_of,
    has_invalid_xml_chars,
    is_month_year,
    is_timestamp,
    to_decimal,
)
from domain.offer import Section


# ============================================================================
# Field types
# ============================================================================

def Code(values: Tuple[str, ...]) -> Any:
    """A string restricted to one closed value set."""

    def check(value: str) -> str:
        if value not in values:
            raise ValueError(f"Invalid value '{value}'. Allowed values: {', '.join(values)}")
        return value

    return Annotated[str, AfterValidator(check)]


def _xml_safe(value: str) -> str:
    if has_invalid_xml_chars(value):
        raise ValueError("Contains characters not allowed in XML")
    return value


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("Must not be blank")
    return value


def Text(max_length: int) -> Any:
    return Annotated[
        str, Field(min_length=1, max_length=max_length), AfterValidator(_not_blank), AfterValidator(_xml_safe)
    ]


def OptionalText(max_length: int) -> Any:
    """Free text that may be left out; a blank value counts as left out."""

    return Optional[Annotated[str, Field(max_length=max_length), AfterValidator(_xml_safe)]]


def FixedDecimal(places: int, ge: Optional[int] = None) -> Any:
    """A decimal that may carry at most `places` decimals; floats are read via their repr."""

    def convert(value: Any) -> Decimal:
        dec = to_decimal(value)
        if decimal_places_of(dec) > places:
            raise ValueError(f"Maximum {places} decimal places allowed")
        return dec

    return Annotated[Decimal, BeforeValidator(convert), Field(ge=ge)]


def _phone(value: str) -> str:
    if not any(ch.isdigit() for ch in value):
        raise ValueError("Phone number must contain at least one digit")
    return _xml_safe(value)


def _timestamp(value: str) -> str:
    if not is_timestamp(value):
        raise ValueError(f"Invalid date format. Expected format: {TIMESTAMP_PATTERN}")
    return value


def _month_year(value: str) -> str:
    if not is_month_year(value):
        raise ValueError(f"Invalid month/year format. Expected format: {MONTH_YEAR_PATTERN}")
    return value


Timestamp = Annotated[str, AfterValidator(_timestamp)]
MonthYear = Annotated[str, AfterValidator(_month_year)]
Consumption = Annotated[int, Field(ge=0, le=999_999_999)]
Power = FixedDecimal(1, ge=0)
Price = FixedDecimal(6)
IdentityCode = Annotated[str, Field(min_length=16, max_length=16, pattern=r"^[A-Za-z0-9]+$")]
OfferCode = Annotated[str, Field(min_length=1, max_length=32, pattern=r"^[A-Za-z0-9]+$")]
LinkedOfferCode = Annotated[str, Field(min_length=1, max_length=32, pattern=r"^[A-Z0-9]+$")]
Phone = Annotated[
    str, Field(min_length=1, max_length=15, pattern=r"^[\d\s\+\-\(\)]+$"), AfterValidator(_phone)
]


class SectionModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ============================================================================
# Core sections
# ============================================================================

class IdentificationSection(SectionModel):
    PIVA_UTENTE: IdentityCode
    COD_OFFERTA: OfferCode


class OfferDetailsSection(SectionModel):
    TIPO_MERCATO: Code(codes.MARKET_TYPES)
    OFFERTA_SINGOLA: Optional[Code(codes.SINGLE_OFFER)] = None
    TIPO_CLIENTE: Code(codes.CLIENT_TYPES)
    DOMESTICO_RESIDENTE: Optional[Code(codes.DOMESTIC_RESIDENT)] = None
    TIPO_OFFERTA: Code(codes.OFFER_TYPES)
    TIPOLOGIA_ATT_CONTR: List[Code(codes.CONTRACT_ACTIVATION_TYPES)] = Field(min_length=1)
    NOME_OFFERTA: Text(255)
    DESCRIZIONE: Text(3000)
    DURATA: Annotated[int, Field(ge=-1, le=99)]
    GARANZIE: Text(3000)


class ActivationMethodsSection(SectionModel):
    MODALITA: List[Code(codes.ACTIVATION_METHODS)] = Field(min_length=1)
    DESCRIZIONE: OptionalText(2000) = None


class ContactInformationSection(SectionModel):
    TELEFONO: Phone
    URL_SITO_VENDITORE: OptionalText(100) = None
    URL_OFFERTA: OptionalText(100) = None


class OfferValiditySection(SectionModel):
    DATA_INIZIO: Timestamp
    DATA_FINE: Timestamp


class PaymentMethod(SectionModel):
    MODALITA_PAGAMENTO: Code(codes.PAYMENT_METHODS)
    DESCRIZIONE: OptionalText(25) = None


# ============================================================================
# Conditional sections
# ============================================================================

class OfferCharacteristicsSection(SectionModel):
    CONSUMO_MIN: Optional[Consumption] = None
    CONSUMO_MAX: Optional[Consumption] = None
    POTENZA_MIN: Optional[Power] = None
    POTENZA_MAX: Optional[Power] = None


class RegulatedComponentsSection(SectionModel):
    CODICE: List[Code(codes.REGULATED_COMPONENTS)] = Field(min_length=1)


class EnergyPriceReferencesSection(SectionModel):
    IDX_PREZZO_ENERGIA: Code(codes.PRICE_INDEXES)
    ALTRO: OptionalText(3000) = None


class DualOffersSection(SectionModel):
    OFFERTE_CONGIUNTE_EE: List[LinkedOfferCode] = Field(default_factory=list)
    OFFERTE_CONGIUNTE_GAS: List[LinkedOfferCode] = Field(default_factory=list)

    @field_validator("OFFERTE_CONGIUNTE_EE", "OFFERTE_CONGIUNTE_GAS")
    @classmethod
    def no_duplicates(cls, value: List[str]) -> List[str]:
        if len(set(value)) != len(value):
            raise ValueError("Duplicate offer codes are not allowed")
        return value


class WeeklySchedule(SectionModel):
    F_LUNEDI: OptionalText(49) = None
    F_MARTEDI: OptionalText(49) = None
    F_MERCOLEDI: OptionalText(49) = None
    F_GIOVEDI: OptionalText(49) = None
    F_VENERDI: OptionalText(49) = None
    F_SABATO: OptionalText(49) = None
    F_DOMENICA: OptionalText(49) = None
    F_FESTIVITA: OptionalText(49) = None


class Dispatching(SectionModel):
    TIPO_DISPACCIAMENTO: Code(codes.DISPATCHING_TYPES)
    VALORE_DISP: Optional[Price] = None
    NOME: Text(25)
    DESCRIZIONE: OptionalText(255) = None


class TimeBandsSection(SectionModel):
    TIPOLOGIA_FASCE: Optional[Code(codes.TIME_BAND_TYPOLOGIES)] = None
    FasceOrarieSettimanale: Optional[WeeklySchedule] = None
    Dispacciamento: List[Dispatching] = Field(default_factory=list)


class ValidityPeriod(SectionModel):
    DURATA: Optional[Annotated[int, Field(ge=1, le=99)]] = None
    VALIDO_FINO: Optional[MonthYear] = None
    MESE_VALIDITA: List[Code(codes.MONTHS)] = Field(default_factory=list)


class PriceInterval(SectionModel):
    FASCIA_COMPONENTE: Optional[Code(codes.COMPONENT_BANDS)] = None
    CONSUMO_DA: Optional[Consumption] = None
    CONSUMO_A: Optional[Consumption] = None
    PREZZO: Price
    UNITA_MISURA: Code(codes.COMPONENT_UNITS)
    PeriodoValidita: Optional[ValidityPeriod] = None


class CompanyComponent(SectionModel):
    NOME: Text(255)
    DESCRIZIONE: Text(255)
    TIPOLOGIA: Code(codes.COMPONENT_TYPES)
    MACROAREA: Code(codes.COMPONENT_AREAS)
    IntervalloPrezzi: List[PriceInterval] = Field(min_length=1)


class ContractualCondition(SectionModel):
    TIPOLOGIA_CONDIZIONE: Code(codes.CONDITION_TYPES)
    ALTRO: OptionalText(20) = None
    DESCRIZIONE: Text(3000)
    LIMITANTE: Code(codes.CONDITION_LIMITING)


class OfferZonesSection(SectionModel):
    REGIONE: List[Annotated[str, Field(pattern=r"^\d{2}$")]] = Field(default_factory=list)
    PROVINCIA: List[Annotated[str, Field(pattern=r"^\d{3}$")]] = Field(default_factory=list)
    COMUNE: List[Annotated[str, Field(pattern=r"^\d{6}$")]] = Field(default_factory=list)


class DiscountCondition(SectionModel):
    CONDIZIONE_APPLICAZIONE: Code(codes.DISCOUNT_CONDITIONS)
    DESCRIZIONE_CONDIZIONE: OptionalText(3000) = None


class DiscountPrice(SectionModel):
    TIPOLOGIA: Code(codes.DISCOUNT_PRICE_TYPES)
    VALIDO_DA: Optional[Consumption] = None
    VALIDO_FINO: Optional[Consumption] = None
    UNITA_MISURA: Code(codes.DISCOUNT_UNITS)
    PREZZO: Price


class Discount(SectionModel):
    NOME: Text(255)
    DESCRIZIONE: Text(3000)
    CODICE_COMPONENTE_FASCIA: List[Code(codes.DISCOUNT_BAND_CODES)] = Field(default_factory=list)
    VALIDITA: Optional[Code(codes.DISCOUNT_VALIDITY)] = None
    IVA_SCONTO: Code(codes.DISCOUNT_VAT)
    PeriodoValidita: Optional[ValidityPeriod] = None
    Condizione: Optional[DiscountCondition] = None
    PREZZISconto: List[DiscountPrice] = Field(default_factory=list)


class AdditionalService(SectionModel):
    NOME: Text(255)
    DETTAGLIO: Text(3000)
    MACROAREA: Optional[Code(codes.SERVICE_CATEGORIES)] = None
    DETTAGLI_MACROAREA: OptionalText(100) = None


# ============================================================================
# Lookup
# ============================================================================

SECTION_SCHEMAS: Dict[Section, Any] = {
    Section.IDENTIFICATION: IdentificationSection,
    Section.OFFER_DETAILS: OfferDetailsSection,
    Section.ACTIVATION_METHODS: ActivationMethodsSection,
    Section.CONTACT_INFORMATION: ContactInformationSection,
    Section.OFFER_VALIDITY: OfferValiditySection,
    Section.OFFER_CHARACTERISTICS: OfferCharacteristicsSection,
    Section.PAYMENT_METHODS: Annotated[List[PaymentMethod], Field(min_length=1)],
    Section.REGULATED_COMPONENTS: RegulatedComponentsSection,
    Section.ENERGY_PRICE_REFERENCES: EnergyPriceReferencesSection,
    Section.DUAL_OFFERS: DualOffersSection,
    Section.TIME_BANDS: TimeBandsSection,
    Section.COMPANY_COMPONENTS: List[CompanyComponent],
    Section.CONTRACTUAL_CONDITIONS: List[ContractualCondition],
    Section.OFFER_ZONES: OfferZonesSection,
    Section.DISCOUNTS: List[Discount],
    Section.ADDITIONAL_SERVICES: List[AdditionalService],
}


def lookup_section_schema(name: Union[str, Section]) -> Optional[Any]:
    """Schema type for a section name, or None when the name has no schema."""

    try:
        section = Section.parse(name)
    except ValueError:
        return None
    return SECTION_SCHEMAS.get(section)


__all__ = [
    "SectionModel",
    "IdentificationSection",
    "OfferDetailsSection",
    "ActivationMethodsSection",
    "ContactInformationSection",
    "OfferValiditySection",
    "PaymentMethod",
    "OfferCharacteristicsSection",
    "RegulatedComponentsSection",
    "EnergyPriceReferencesSection",
    "DualOffersSection",
    "WeeklySchedule",
    "Dispatching",
    "TimeBandsSection",
    "ValidityPeriod",
    "PriceInterval",
    "CompanyComponent",
    "ContractualCondition",
    "OfferZonesSection",
    "DiscountCondition",
    "DiscountPrice",
    "Discount",
    "AdditionalService",
    "SECTION_SCHEMAS",
    "lookup_section_schema",
]
