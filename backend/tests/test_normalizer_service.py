"""
Unit tests for NormalizerService.

Verificano la normalizzazione del documento di stato: coercizione dei
campi, scarto dei record non validi, forme legacy e idempotenza.
"""

import json
from decimal import Decimal

import pytest

from bizmanager.schemas.job import JobStatus
from bizmanager.schemas.movement import CounterpartyType, MovementType
from bizmanager.schemas.quote import QuoteCreate, QuoteStatus
from bizmanager.schemas.store import Store
from bizmanager.services.normalizer_service import NormalizerService
from bizmanager.services.quote_service import QuoteService


@pytest.fixture
def normalizer() -> NormalizerService:
    return NormalizerService()


@pytest.fixture
def legacy_document() -> dict:
    """Documento con campi sporchi, record orfani e forme legacy."""
    return {
        "companyName": "  Edil Rossi  ",
        "saldoIniziale": "1000,50",
        "quoteCounter": 2,
        "selectedQuoteId": 12345,
        "movimenti": [
            {"id": 1, "desc": " Affitto ", "importo": "500", "tipo": "uscita",
             "controparteTipo": "fornitore", "commessa": "c-01", "dateISO": "2024-01-10T10:00:00Z"},
            {"id": 2, "desc": "", "importo": 10},
            {"id": 3, "desc": "Rimborso", "importo": -5},
            "non un movimento",
        ],
        "anagrafiche": {"clienti": ["  Zeta", "alfa", "Zeta", "", "Élite"], "fornitori": None},
        "jobs": [
            {"id": 10, "titolo": "Cucina", "cliente": "Bianchi", "agreedTotal": "100",
             "stato": "aperto", "commessa": "k-1"},
            {"id": 11, "titolo": "Bagno", "cliente": "Verdi", "agreedTotal": 300, "stato": "archived"},
            {"id": 12, "titolo": "", "cliente": "Neri", "agreedTotal": 50},
        ],
        "jobPayments": [
            {"id": 20, "jobId": 10, "amount": 100, "dateISO": "2024-02-01T12:00:00Z"},
            {"id": 21, "jobId": 999, "amount": 50},
            {"id": 22, "jobId": 11, "amount": 0},
        ],
        "jobLines": [
            {"id": 30, "jobId": 10, "desc": "Piastrelle", "kind": "boh", "qty": "", "unitPrice": "12,5"},
            {"id": 31, "jobId": 12, "desc": "Orfana"},
        ],
        "purchaseLines": [
            {"id": 40, "fornitore": "Brico", "prodotto": "Colla", "unitPrice": 3, "commessa": "k-1"},
            {"id": 41, "fornitore": "", "prodotto": "Silicone", "unitPrice": 4},
        ],
        "quotes": [
            {"id": 50, "number": 3, "cliente": "Bianchi", "commessa": "q-1",
             "stato": "confermato", "note": "vecchia nota", "createdISO": "2023-05-05T09:00:00Z",
             "righe": [{"desc": "Posa", "qty": 3, "unitPrice": 10, "sconto": 10, "iva": 22}],
             "totals": {"taxable": 999, "vat": 999, "total": 999}},
            {"id": 51, "number": 3, "cliente": "Verdi", "commessa": "q-2", "righe": []},
            {"id": 52, "cliente": "Gialli", "commessa": "q-3",
             "righe": [{"desc": "Esente", "qty": 1, "unitPrice": 100, "iva": 0}, "riga rotta"]},
            {"id": 53, "cliente": "", "commessa": "q-4"},
        ],
    }


# ============================================================
# Tests per la coercizione dei campi
# ============================================================


class TestFieldCoercion:
    """Tests per la conversione dei singoli campi."""

    def test_text_trimmed_and_commessa_upper(self, normalizer, legacy_document):
        """Test testi ripuliti e commessa in maiuscolo."""
        store = normalizer.normalize(legacy_document).store

        movement = store.movimenti[0]
        assert movement.desc == "Affitto"
        assert movement.commessa == "C-01"
        assert movement.tipo == MovementType.USCITA
        assert movement.controparte_tipo == CounterpartyType.FORNITORE
        assert store.company_name == "Edil Rossi"

    def test_italian_decimal_comma(self, normalizer, legacy_document):
        """Test numeri con virgola decimale."""
        store = normalizer.normalize(legacy_document).store

        assert store.saldo_iniziale == Decimal("1000.5")
        assert store.job_lines[0].unit_price == Decimal("12.5")

    def test_job_line_defaults(self, normalizer, legacy_document):
        """Test default di tipo, quantità e unità delle righe lavoro."""
        line = normalizer.normalize(legacy_document).store.job_lines[0]

        assert line.kind.value == "materiale"
        assert line.qty == Decimal("1")
        assert line.unit == "pz"
        assert line.done is False

    def test_job_line_quantity(self, normalizer):
        """Test quantità: zero o non numerica vale 1, negativa conservata."""
        document = {
            "jobs": [{"id": 1, "titolo": "Tetto", "cliente": "Neri", "agreedTotal": 100}],
            "jobLines": [
                {"id": 2, "jobId": 1, "desc": "Coppi", "qty": 0},
                {"id": 3, "jobId": 1, "desc": "Reso", "qty": "-2"},
                {"id": 4, "jobId": 1, "desc": "Colmo", "qty": "tanti"},
            ],
        }

        lines = normalizer.normalize(document).store.job_lines

        assert [line.qty for line in lines] == [Decimal("1"), Decimal("-2"), Decimal("1")]

    def test_missing_dates_default_to_now(self, normalizer):
        """Test data mancante sostituita con l'istante corrente."""
        store = normalizer.normalize({"movimenti": [{"desc": "x", "importo": 1}]}).store

        assert store.movimenti[0].date_iso.endswith("Z")

    def test_anagrafiche_deduplicated_and_sorted(self, normalizer, legacy_document):
        """Test anagrafiche pulite, senza duplicati, in ordine alfabetico."""
        store = normalizer.normalize(legacy_document).store

        assert store.anagrafiche.clienti == ["alfa", "Élite", "Zeta"]
        assert store.anagrafiche.fornitori == []

    def test_company_defaults(self, normalizer):
        """Test valori di default del profilo ditta."""
        store = normalizer.normalize({}).store

        assert store.company_name == "La tua ditta"
        assert store.company_logo_data_url is None
        assert store.saldo_iniziale == Decimal("0")
        assert store.quote_counter == 1


# ============================================================
# Tests per lo scarto dei record
# ============================================================


class TestDiscardedRecords:
    """Tests per i record non recuperabili."""

    def test_invalid_movements_dropped(self, normalizer, legacy_document):
        """Test movimenti senza descrizione, negativi o non oggetti scartati."""
        store = normalizer.normalize(legacy_document).store

        assert [m.id for m in store.movimenti] == [1]

    def test_job_without_title_dropped(self, normalizer, legacy_document):
        """Test lavoro senza titolo scartato."""
        store = normalizer.normalize(legacy_document).store

        assert [j.id for j in store.jobs] == [10, 11]

    def test_orphans_dropped(self, normalizer, legacy_document):
        """Test pagamenti e righe di lavori inesistenti scartati."""
        store = normalizer.normalize(legacy_document).store

        assert [p.id for p in store.job_payments] == [20]
        assert [line.id for line in store.job_lines] == [30]

    def test_purchase_without_supplier_dropped(self, normalizer, legacy_document):
        """Test acquisto senza fornitore scartato."""
        store = normalizer.normalize(legacy_document).store

        assert [p.id for p in store.purchase_lines] == [40]

    def test_quote_without_client_dropped(self, normalizer, legacy_document):
        """Test preventivo senza cliente scartato."""
        store = normalizer.normalize(legacy_document).store

        assert [q.id for q in store.quotes] == [50, 51, 52]

    def test_diagnostics_reported(self, normalizer, legacy_document):
        """Test ogni scarto è riportato nella diagnostica."""
        result = normalizer.normalize(legacy_document)

        collections = [d.collection for d in result.discarded]
        assert collections.count("movimenti") == 3
        assert collections.count("jobPayments") == 2
        assert ("jobLines", 1) in [(d.collection, d.index) for d in result.discarded]
        assert "quotes" in collections

    def test_malformed_json_gives_default_store(self, normalizer):
        """Test JSON illeggibile: Store di default con diagnostica."""
        result = normalizer.parse("{non è json")

        assert result.store == Store()
        assert result.discarded[0].collection == "document"

    def test_non_object_document(self, normalizer):
        """Test documento che non è un oggetto."""
        result = normalizer.normalize([1, 2, 3])

        assert result.store.jobs == []
        assert len(result.discarded) == 1

    def test_empty_text_is_not_an_error(self, normalizer):
        """Test storage vuoto: Store di default senza diagnostica."""
        result = normalizer.parse(None)

        assert result.discarded == []


# ============================================================
# Tests per le regole sull'insieme
# ============================================================


class TestStoreRules:
    """Tests per numerazione preventivi, id, stati e selezione."""

    def test_legacy_quote_shape(self, normalizer, legacy_document):
        """Test stato confermato, note e createdISO legacy."""
        quote = normalizer.normalize(legacy_document).store.quotes[0]

        assert quote.status == QuoteStatus.LOCKED
        assert quote.notes == "vecchia nota"
        assert quote.date_iso == "2023-05-05T09:00:00Z"

    def test_quote_totals_recomputed(self, normalizer, legacy_document):
        """Test totali ricalcolati dalle righe, non letti dallo storage."""
        quote = normalizer.normalize(legacy_document).store.quotes[0]

        assert quote.totals.taxable == Decimal("27.00")
        assert quote.totals.vat == Decimal("5.94")
        assert quote.totals.total == Decimal("32.94")

    def test_zero_vat_preserved(self, normalizer, legacy_document):
        """Test aliquota zero mantenuta e righe non valide ignorate."""
        quote = normalizer.normalize(legacy_document).store.quotes[2]

        assert len(quote.righe) == 1
        assert quote.righe[0].iva == Decimal("0")
        assert quote.totals.total == Decimal("100.00")

    def test_quote_numbers_unique(self, normalizer, legacy_document):
        """Test numeri duplicati o mancanti rinumerati dal contatore."""
        store = normalizer.normalize(legacy_document).store

        numbers = [q.number for q in store.quotes]
        assert numbers == [3, 4, 5]
        assert store.quote_counter == 6

    def test_counter_never_lowered(self, normalizer):
        """Test contatore già alto mantenuto."""
        document = {"quoteCounter": 40, "quotes": [{"cliente": "A", "commessa": "B", "number": 7}]}

        assert normalizer.normalize(document).store.quote_counter == 40

    def test_new_quote_number_after_load(self, normalizer):
        """Test il primo preventivo creato dopo il caricamento ha un numero nuovo."""
        document = {
            "quoteCounter": 1,
            "quotes": [
                {"id": 1, "cliente": "A", "commessa": "B", "number": 7},
                {"id": 2, "cliente": "C", "commessa": "D", "number": 3},
            ],
        }
        store = normalizer.normalize(document).store

        created = QuoteService().create_quote(store, QuoteCreate(cliente="E", commessa="F"))

        assert created.number > 7
        numbers = [quote.number for quote in store.quotes]
        assert len(numbers) == len(set(numbers)) == 3

    def test_selected_quote_fallback(self, normalizer, legacy_document):
        """Test selezione non valida spostata sul primo preventivo."""
        store = normalizer.normalize(legacy_document).store

        assert store.selected_quote_id == 50

    def test_duplicate_ids_replaced(self, normalizer):
        """Test id duplicati sostituiti con id nuovi e maggiori."""
        document = {
            "movimenti": [
                {"id": 5, "desc": "a", "importo": 1},
                {"id": 5, "desc": "b", "importo": 2},
                {"desc": "c", "importo": 3},
            ]
        }
        ids = [m.id for m in normalizer.normalize(document).store.movimenti]

        assert ids[0] == 5
        assert len(set(ids)) == 3
        assert min(ids[1:]) > 5

    def test_settled_job_closed_and_archived_preserved(self, normalizer, legacy_document):
        """Test lavoro saldato chiuso, lavoro archiviato lasciato archiviato."""
        store = normalizer.normalize(legacy_document).store
        jobs = {j.id: j for j in store.jobs}

        assert jobs[10].stato == JobStatus.CHIUSO
        assert jobs[11].stato == JobStatus.ARCHIVED


# ============================================================
# Tests per l'idempotenza
# ============================================================


class TestFixedPoint:
    """Tests per normalize(serialize(normalize(x))) == normalize(x)."""

    def test_normalization_is_fixed_point(self, normalizer, legacy_document):
        """Test seconda normalizzazione identica alla prima."""
        first = normalizer.normalize(legacy_document)
        serialized = json.dumps(first.store.to_document())
        second = normalizer.parse(serialized)

        assert second.store == first.store
        assert second.discarded == []

    def test_serialized_keys_are_camel_case(self, normalizer, legacy_document):
        """Test chiavi del documento persistito."""
        document = normalizer.normalize(legacy_document).store.to_document()

        assert "jobPayments" in document
        assert "agreedTotal" in document["jobs"][0]
        assert "createdISO" in document["jobs"][0]
        assert "dateISO" in document["quotes"][0]
        assert isinstance(document["saldoIniziale"], float)
