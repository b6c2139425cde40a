"""
Pytest configuration.

This file adds the parent directory to the Python path so that tests
can import from the domain, schemas, services, repositories and api
modules, and provides offer document fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add the project root to the Python path
# so tests can import domain, services, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from services.business_rules import register_business_rules  # noqa: E402
from services.rule_registry import RuleRegistry  # noqa: E402


def build_sample_document() -> dict:
    """
    A complete, valid electricity offer: fixed price, three time bands.

    Passes the schema pass, every business rule and the structural check
    of its generated XML.
    """
    return {
        "identification": {
            "PIVA_UTENTE": "ABCDEFGH12345678",
            "COD_OFFERTA": "WINTER2025",
        },
        "offer_details": {
            "TIPO_MERCATO": "01",
            "OFFERTA_SINGOLA": "SI",
            "TIPO_CLIENTE": "01",
            "DOMESTICO_RESIDENTE": "01",
            "TIPO_OFFERTA": "01",
            "TIPOLOGIA_ATT_CONTR": ["01", "02"],
            "NOME_OFFERTA": "Winter Offer 2024",
            "DESCRIZIONE": "Fixed price electricity offer",
            "DURATA": 12,
            "GARANZIE": "NO",
        },
        "activation_methods": {
            "MODALITA": ["01", "03"],
            "DESCRIZIONE": "Online or by phone",
        },
        "contact_information": {
            "TELEFONO": "+39 06 1234567",
            "URL_SITO_VENDITORE": "https://www.example.it",
            "URL_OFFERTA": "https://www.example.it/winter",
        },
        "offer_validity": {
            "DATA_INIZIO": "01/01/2025_00:00:00",
            "DATA_FINE": "31/12/2025_23:59:59",
        },
        "offer_characteristics": {
            "POTENZA_MIN": 3.0,
            "POTENZA_MAX": 6,
        },
        "payment_methods": [
            {"MODALITA_PAGAMENTO": "01"},
            {"MODALITA_PAGAMENTO": "99", "DESCRIZIONE": "Bank transfer"},
        ],
        "regulated_components": {
            "CODICE": ["01", "02"],
        },
        "time_bands": {
            "TIPOLOGIA_FASCE": "03",
            "FasceOrarieSettimanale": {"F_LUNEDI": "1-8,2-19,3-24"},
            "Dispacciamento": [
                {"TIPO_DISPACCIAMENTO": "01", "VALORE_DISP": 0.005, "NOME": "Dispatching"},
            ],
        },
        "company_components": [
            {
                "NOME": "Energy price",
                "DESCRIZIONE": "Price per kWh by band",
                "TIPOLOGIA": "01",
                "MACROAREA": "02",
                "IntervalloPrezzi": [
                    {"FASCIA_COMPONENTE": "01", "PREZZO": 0.1, "UNITA_MISURA": "03"},
                    {"FASCIA_COMPONENTE": "02", "PREZZO": 0.1, "UNITA_MISURA": "03"},
                    {"FASCIA_COMPONENTE": "03", "PREZZO": 0.1, "UNITA_MISURA": "03"},
                ],
            },
            {
                "NOME": "Fixed fee",
                "DESCRIZIONE": "Monthly fee",
                "TIPOLOGIA": "01",
                "MACROAREA": "01",
                "IntervalloPrezzi": [
                    {
                        "PREZZO": 12.5,
                        "UNITA_MISURA": "01",
                        "PeriodoValidita": {
                            "DURATA": 12,
                            "VALIDO_FINO": "12/2025",
                            "MESE_VALIDITA": ["01", "02"],
                        },
                    },
                ],
            },
        ],
        "contractual_conditions": [
            {
                "TIPOLOGIA_CONDIZIONE": "01",
                "DESCRIZIONE": "Early termination fee",
                "LIMITANTE": "01",
            },
        ],
        "offer_zones": {
            "REGIONE": ["12"],
        },
        "discounts": [
            {
                "NOME": "Welcome discount",
                "DESCRIZIONE": "Discount for the first year",
                "VALIDITA": "01",
                "IVA_SCONTO": "01",
                "Condizione": {"CONDIZIONE_APPLICAZIONE": "01"},
                "PREZZISconto": [
                    {"TIPOLOGIA": "01", "UNITA_MISURA": "03", "PREZZO": 0.01},
                ],
            },
        ],
        "additional_services": [
            {
                "NOME": "Smart thermostat",
                "DETTAGLIO": "Thermostat included",
                "MACROAREA": "01",
            },
        ],
    }


@pytest.fixture
def sample_document() -> dict:
    return build_sample_document()


@pytest.fixture
def registry() -> RuleRegistry:
    """A freshly populated registry, isolated from the process-wide default."""
    return register_business_rules(RuleRegistry())


@pytest.fixture
def make_document():
    """Factory for independent copies of the sample document."""
    return build_sample_document
