"""
Offer XML generator.

Maps an offer document onto the target element tree and renders it.

Contract:
- Pure and deterministic: identical input yields byte-identical output.
- Element order is fixed by the target format, never by the order of keys
  in the input. Within repeated blocks (payment methods, discounts, ...)
  input list order is kept.
- An absent optional value (None, empty or whitespace-only) omits its
  element. An empty element is never emitted as a stand-in for "not provided".
- Text holding characters XML 1.0 cannot carry raises GenerationError.
- Numbers are rendered fixed-point at their contracted precision.
- Timestamps must already match DD/MM/YYYY_HH:MM:SS (datetime values are
  formatted). Anything else raises GenerationError naming the section and
  field rather than reaching the output.

The generator is not a validation pass. Run the validation runner first.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional, Union

from domain.errors import GenerationError
from domain.formatting import (
    DECIMAL_PLACES,
    TIMESTAMP_PATTERN,
    MONTH_YEAR_PATTERN,
    format_decimal,
    format_timestamp,
    has_invalid_xml_chars,
    is_month_year,
    is_timestamp,
)
from domain.offer import OfferDocument, Section
from domain.xml_element import XmlElement

ROOT_ELEMENT = "Offerta"

WEEKDAY_FIELDS = (
    "F_LUNEDI",
    "F_MARTEDI",
    "F_MERCOLEDI",
    "F_GIOVEDI",
    "F_VENERDI",
    "F_SABATO",
    "F_DOMENICA",
    "F_FESTIVITA",
)


def _absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _rows(values: Any, section: Section, field: str) -> List[Mapping[str, Any]]:
    """Nested repeated records; anything but a list of records is a generation error."""

    if values is None:
        return []
    if not isinstance(values, list) or not all(isinstance(v, Mapping) for v in values):
        raise GenerationError("Expected a list of records", section.value, field)
    return values


class _Block:
    """Writes the fields of one source record into one element, with error context."""

    def __init__(self, element: XmlElement, section: Section, data: Mapping[str, Any]) -> None:
        self.element = element
        self.section = section
        self.data = data

    def _fail(self, message: str, field: str, cause: Optional[BaseException] = None) -> GenerationError:
        return GenerationError(message, self.section.value, field, cause)

    def _get(self, field: str, required: bool) -> Any:
        value = self.data.get(field)
        if _absent(value):
            if required:
                raise self._fail("Required field is missing", field)
            return None
        return value

    def _as_text(self, field: str, value: Any) -> str:
        if isinstance(value, str):
            if has_invalid_xml_chars(value):
                raise self._fail("Text contains characters not allowed in XML", field)
            return value
        raise self._fail(f"Expected a text value, got {type(value).__name__}", field)

    def text(self, field: str, required: bool = True) -> None:
        value = self._get(field, required)
        if value is not None:
            self.element.add(field, self._as_text(field, value))

    def texts(self, field: str) -> None:
        """One element per list entry."""

        values = self._get(field, required=False) or []
        if not isinstance(values, (list, tuple)):
            raise self._fail("Expected a list of values", field)
        for value in values:
            if _absent(value):
                continue
            self.element.add(field, self._as_text(field, value))

    def number(self, field: str, required: bool = True, places: Optional[int] = None) -> None:
        value = self._get(field, required)
        if value is None:
            return
        if places is None:
            places = DECIMAL_PLACES[field]
        try:
            self.element.add(field, format_decimal(value, places))
        except ValueError as exc:
            raise self._fail(f"Invalid numeric value {value!r}", field, exc) from exc

    def timestamp(self, field: str, required: bool = True) -> None:
        value = self._get(field, required)
        if value is None:
            return
        if isinstance(value, datetime):
            value = format_timestamp(value)
        if not is_timestamp(value):
            raise self._fail(f"Invalid date {value!r}, expected {TIMESTAMP_PATTERN}", field)
        self.element.add(field, value)

    def month_year(self, field: str, required: bool = True) -> None:
        value = self._get(field, required)
        if value is None:
            return
        if not is_month_year(value):
            raise self._fail(f"Invalid month/year {value!r}, expected {MONTH_YEAR_PATTERN}", field)
        self.element.add(field, value)

    def child(self, name: str, data: Mapping[str, Any]) -> "_Block":
        return _Block(XmlElement(name), self.section, data)

    def attach(self, block: "_Block") -> None:
        """Append a nested block only if it received any content."""

        if block.element.children:
            self.element.append(block.element)


class OfferXmlGenerator:
    """Builds and renders the Offerta document. Holds no state between calls."""

    def build(self, document: Union[OfferDocument, Mapping[str, Any]]) -> XmlElement:
        """
        Build the ordered element tree for one offer.

        Raises:
            GenerationError: If a required section or field is missing, or a
                value cannot be rendered in its contracted format
        """

        doc = OfferDocument.from_mapping(document)
        root = XmlElement(ROOT_ELEMENT)

        self._identification(root, doc)
        self._offer_details(root, doc)
        self._activation_methods(root, doc)
        self._contacts(root, doc)
        self._validity(root, doc)
        self._payment_methods(root, doc)

        self._price_references(root, doc)
        self._characteristics(root, doc)
        self._dual_offers(root, doc)
        self._regulated_components(root, doc)
        self._time_bands(root, doc)
        self._company_components(root, doc)
        self._contractual_conditions(root, doc)
        self._zones(root, doc)
        self._discounts(root, doc)
        self._additional_services(root, doc)
        return root

    def generate(
        self,
        document: Union[OfferDocument, Mapping[str, Any]],
        pretty: bool = True,
        declaration: bool = True,
    ) -> str:
        return self.build(document).render(pretty=pretty, declaration=declaration)

    # ------------------------------------------------------------------
    # Section access
    # ------------------------------------------------------------------

    def _record(self, doc: OfferDocument, section: Section, required: bool) -> Optional[Mapping[str, Any]]:
        data = doc.section(section)
        if data is None:
            if required:
                raise GenerationError("Required section is missing", section.value)
            return None
        if not isinstance(data, Mapping):
            raise GenerationError("Section must be a record", section.value)
        return data

    def _list(self, doc: OfferDocument, section: Section, required: bool) -> List[Mapping[str, Any]]:
        data = doc.section(section)
        if data is None or data == []:
            if required:
                raise GenerationError("Required section is missing", section.value)
            return []
        if not isinstance(data, list) or not all(isinstance(entry, Mapping) for entry in data):
            raise GenerationError("Section must be a list of records", section.value)
        return data

    def _block(self, parent: XmlElement, name: str, section: Section, data: Mapping[str, Any]) -> _Block:
        return _Block(parent.add(name), section, data)

    def _optional_block(self, name: str, section: Section, data: Mapping[str, Any]) -> _Block:
        return _Block(XmlElement(name), section, data)

    def _attach(self, parent: XmlElement, block: _Block) -> None:
        if block.element.children:
            parent.append(block.element)

    # ------------------------------------------------------------------
    # Mandatory blocks
    # ------------------------------------------------------------------

    def _identification(self, root: XmlElement, doc: OfferDocument) -> None:
        data = self._record(doc, Section.IDENTIFICATION, required=True)
        block = self._block(root, "IdentificativiOfferta", Section.IDENTIFICATION, data)
        block.text("PIVA_UTENTE")
        block.text("COD_OFFERTA")

    def _offer_details(self, root: XmlElement, doc: OfferDocument) -> None:
        data = self._record(doc, Section.OFFER_DETAILS, required=True)
        block = self._block(root, "DettaglioOfferta", Section.OFFER_DETAILS, data)
        block.text("TIPO_MERCATO")
        block.text("OFFERTA_SINGOLA", required=False)
        block.text("TIPO_CLIENTE")
        block.text("DOMESTICO_RESIDENTE", required=False)
        block.text("TIPO_OFFERTA")
        block.texts("TIPOLOGIA_ATT_CONTR")
        block.text("NOME_OFFERTA")
        block.text("DESCRIZIONE")
        block.number("DURATA")
        block.text("GARANZIE")

    def _activation_methods(self, root: XmlElement, doc: OfferDocument) -> None:
        data = self._record(doc, Section.ACTIVATION_METHODS, required=True)
        block = self._block(root, "DettaglioOfferta.ModalitaAttivazione", Section.ACTIVATION_METHODS, data)
        block.texts("MODALITA")
        if not block.element.children:
            raise GenerationError("At least one activation method is required", Section.ACTIVATION_METHODS.value, "MODALITA")
        block.text("DESCRIZIONE", required=False)

    def _contacts(self, root: XmlElement, doc: OfferDocument) -> None:
        data = self._record(doc, Section.CONTACT_INFORMATION, required=True)
        block = self._block(root, "DettaglioOfferta.Contatti", Section.CONTACT_INFORMATION, data)
        block.text("TELEFONO")
        block.text("URL_SITO_VENDITORE", required=False)
        block.text("URL_OFFERTA", required=False)

    def _validity(self, root: XmlElement, doc: OfferDocument) -> None:
        data = self._record(doc, Section.OFFER_VALIDITY, required=True)
        block = self._block(root, "ValiditaOfferta", Section.OFFER_VALIDITY, data)
        block.timestamp("DATA_INIZIO")
        block.timestamp("DATA_FINE")

    def _payment_methods(self, root: XmlElement, doc: OfferDocument) -> None:
        for entry in self._list(doc, Section.PAYMENT_METHODS, required=True):
            block = self._block(root, "MetodoPagamento", Section.PAYMENT_METHODS, entry)
            block.text("MODALITA_PAGAMENTO")
            block.text("DESCRIZIONE", required=False)

    # ------------------------------------------------------------------
    # Optional blocks
    # ------------------------------------------------------------------

    def _price_references(self, root: XmlElement, doc: OfferDocument) -> None:
        data = self._record(doc, Section.ENERGY_PRICE_REFERENCES, required=False)
        if data is None:
            return
        block = self._optional_block("RiferimentiPrezzoEnergia", Section.ENERGY_PRICE_REFERENCES, data)
        block.text("IDX_PREZZO_ENERGIA")
        block.text("ALTRO", required=False)
        self._attach(root, block)

    def _characteristics(self, root: XmlElement, doc: OfferDocument) -> None:
        data = self._record(doc, Section.OFFER_CHARACTERISTICS, required=False)
        if data is None:
            return
        block = self._optional_block("CaratteristicheOfferta", Section.OFFER_CHARACTERISTICS, data)
        for field in ("CONSUMO_MIN", "CONSUMO_MAX", "POTENZA_MIN", "POTENZA_MAX"):
            block.number(field, required=False)
        self._attach(root, block)

    def _dual_offers(self, root: XmlElement, doc: OfferDocument) -> None:
        data = self._record(doc, Section.DUAL_OFFERS, required=False)
        if data is None:
            return
        block = self._optional_block("OffertaDUAL", Section.DUAL_OFFERS, data)
        block.texts("OFFERTE_CONGIUNTE_EE")
        block.texts("OFFERTE_CONGIUNTE_GAS")
        self._attach(root, block)

    def _regulated_components(self, root: XmlElement, doc: OfferDocument) -> None:
        data = self._record(doc, Section.REGULATED_COMPONENTS, required=False)
        if data is None:
            return
        block = self._optional_block("ComponentiRegolate", Section.REGULATED_COMPONENTS, data)
        block.texts("CODICE")
        self._attach(root, block)

    def _time_bands(self, root: XmlElement, doc: OfferDocument) -> None:
        data = self._record(doc, Section.TIME_BANDS, required=False)
        if data is None:
            return

        price_type = self._optional_block("TipoPrezzo", Section.TIME_BANDS, data)
        price_type.text("TIPOLOGIA_FASCE", required=False)
        self._attach(root, price_type)

        weekly = data.get("FasceOrarieSettimanale")
        if isinstance(weekly, Mapping):
            schedule = self._optional_block("FasceOrarieSettimanale", Section.TIME_BANDS, weekly)
            for field in WEEKDAY_FIELDS:
                schedule.text(field, required=False)
            self._attach(root, schedule)

        for entry in _rows(data.get("Dispacciamento"), Section.TIME_BANDS, "Dispacciamento"):
            block = self._block(root, "Dispacciamento", Section.TIME_BANDS, entry)
            block.text("TIPO_DISPACCIAMENTO")
            block.number("VALORE_DISP", required=False)
            block.text("NOME")
            block.text("DESCRIZIONE", required=False)

    def _validity_period(self, parent: _Block, data: Any) -> None:
        if not isinstance(data, Mapping):
            return
        period = parent.child("PeriodoValidita", data)
        period.number("DURATA", required=False)
        period.month_year("VALIDO_FINO", required=False)
        period.texts("MESE_VALIDITA")
        parent.attach(period)

    def _company_components(self, root: XmlElement, doc: OfferDocument) -> None:
        for entry in self._list(doc, Section.COMPANY_COMPONENTS, required=False):
            block = self._block(root, "ComponenteImpresa", Section.COMPANY_COMPONENTS, entry)
            block.text("NOME")
            block.text("DESCRIZIONE")
            block.text("TIPOLOGIA")
            block.text("MACROAREA")
            for interval in _rows(entry.get("IntervalloPrezzi"), Section.COMPANY_COMPONENTS, "IntervalloPrezzi"):
                row = block.child("IntervalloPrezzi", interval)
                row.text("FASCIA_COMPONENTE", required=False)
                row.number("CONSUMO_DA", required=False)
                row.number("CONSUMO_A", required=False)
                row.number("PREZZO")
                row.text("UNITA_MISURA")
                self._validity_period(row, interval.get("PeriodoValidita"))
                block.attach(row)

    def _contractual_conditions(self, root: XmlElement, doc: OfferDocument) -> None:
        for entry in self._list(doc, Section.CONTRACTUAL_CONDITIONS, required=False):
            block = self._block(root, "CondizioniContrattuali", Section.CONTRACTUAL_CONDITIONS, entry)
            block.text("TIPOLOGIA_CONDIZIONE")
            block.text("ALTRO", required=False)
            block.text("DESCRIZIONE")
            block.text("LIMITANTE")

    def _zones(self, root: XmlElement, doc: OfferDocument) -> None:
        data = self._record(doc, Section.OFFER_ZONES, required=False)
        if data is None:
            return
        block = self._optional_block("ZoneOfferta", Section.OFFER_ZONES, data)
        block.texts("REGIONE")
        block.texts("PROVINCIA")
        block.texts("COMUNE")
        self._attach(root, block)

    def _discounts(self, root: XmlElement, doc: OfferDocument) -> None:
        for entry in self._list(doc, Section.DISCOUNTS, required=False):
            block = self._block(root, "Sconto", Section.DISCOUNTS, entry)
            block.text("NOME")
            block.text("DESCRIZIONE")
            block.texts("CODICE_COMPONENTE_FASCIA")
            block.text("VALIDITA", required=False)
            block.text("IVA_SCONTO")
            self._validity_period(block, entry.get("PeriodoValidita"))

            condition = entry.get("Condizione")
            if isinstance(condition, Mapping):
                cond = block.child("Condizione", condition)
                cond.text("CONDIZIONE_APPLICAZIONE")
                cond.text("DESCRIZIONE_CONDIZIONE", required=False)
                block.attach(cond)

            for price in _rows(entry.get("PREZZISconto"), Section.DISCOUNTS, "PREZZISconto"):
                row = block.child("PREZZISconto", price)
                row.text("TIPOLOGIA")
                row.number("VALIDO_DA", required=False)
                row.number("VALIDO_FINO", required=False, places=0)
                row.text("UNITA_MISURA")
                row.number("PREZZO")
                block.attach(row)

    def _additional_services(self, root: XmlElement, doc: OfferDocument) -> None:
        for entry in self._list(doc, Section.ADDITIONAL_SERVICES, required=False):
            block = self._block(root, "ProdottiServiziAggiuntivi", Section.ADDITIONAL_SERVICES, entry)
            block.text("NOME")
            block.text("DETTAGLIO")
            block.text("MACROAREA", required=False)
            block.text("DETTAGLI_MACROAREA", required=False)


def generate_offer_xml(document: Union[OfferDocument, Mapping[str, Any]], pretty: bool = True) -> str:
    return OfferXmlGenerator().generate(document, pretty=pretty)


__all__ = ["ROOT_ELEMENT", "WEEKDAY_FIELDS", "OfferXmlGenerator", "generate_offer_xml"]
