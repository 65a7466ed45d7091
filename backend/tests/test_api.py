"""
Integration tests per l'API v1.

Usano la LedgerSession del test (SQLite in memoria) tramite
dependency_overrides: ogni mutazione viene salvata con commit.
"""

from bizmanager.services.store_service import LedgerSession

API = "/api/v1"


def _create_job(client, agreed_total=1000, commessa="k-1"):
    response = client.post(
        f"{API}/jobs/",
        json={"titolo": "Cucina", "cliente": "Bianchi", "commessa": commessa, "agreedTotal": agreed_total},
    )
    assert response.status_code == 201
    return response.json()


def _create_quote(client):
    response = client.post(f"{API}/quotes/", json={"cliente": "Verdi", "commessa": "p-1"})
    assert response.status_code == 201
    quote = response.json()
    client.post(
        f"{API}/quotes/{quote['id']}/lines",
        json={"desc": "Posa", "qty": 3, "unitPrice": 10, "sconto": 10, "iva": 22},
    )
    return quote


# ============================================================
# Tests di sistema
# ============================================================


class TestSystem:
    """Tests per health check e stato."""

    def test_health(self, client):
        """Test health check con stato dello storage."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["storage_degraded"] is False

    def test_store_status(self, client):
        """Test diagnostica iniziale."""
        body = client.get(f"{API}/store/status").json()

        assert body["storageDegraded"] is False
        assert body["counts"]["jobs"] == 0


# ============================================================
# Tests per movimenti e lavori
# ============================================================


class TestMovementsApi:
    """Tests per /movements."""

    def test_record_and_balance(self, client):
        """Test movimento registrato e saldo aggiornato."""
        client.put(f"{API}/store/initial-balance", json={"saldoIniziale": 50})
        response = client.post(
            f"{API}/movements/",
            json={"desc": "Gasolio", "importo": "20.5", "tipo": "uscita", "controparteTipo": "altro"},
        )

        assert response.status_code == 201
        balance = client.get(f"{API}/movements/balance").json()
        assert balance["saldoAttuale"] == 29.5
        assert balance["totals"]["uscite"] == 20.5
        timeline = client.get(f"{API}/movements/timeline").json()
        assert [point["saldo"] for point in timeline] == [50.0, 29.5]

    def test_invalid_movement(self, client):
        """Test descrizione vuota: errore di validazione."""
        response = client.post(f"{API}/movements/", json={"desc": " ", "importo": 1})

        assert response.status_code == 422
        assert response.json()["error_code"] == "BUSINESS_VALIDATION_ERROR"


class TestJobsApi:
    """Tests per /jobs."""

    def test_payment_flow(self, client, ledger):
        """Test incasso parziale e saldo con chiusura del lavoro."""
        job = _create_job(client)

        first = client.post(f"{API}/jobs/{job['id']}/payments", json={"amount": 400})
        second = client.post(f"{API}/jobs/{job['id']}/payments", json={"amount": 700})

        assert first.status_code == 201
        assert first.json()["jobClosed"] is False
        assert second.json()["jobClosed"] is True
        assert second.json()["synthesizedMovement"]["importo"] == 700.0
        detail = client.get(f"{API}/jobs/{job['id']}").json()
        assert detail["due"] == 0.0
        assert detail["job"]["stato"] == "chiuso"
        assert len(client.get(f"{API}/movements/").json()) == 2

    def test_changes_are_persisted(self, client, sql_storage):
        """Test ogni mutazione viene scritta nello storage."""
        job = _create_job(client)

        reopened = LedgerSession(sql_storage)
        assert [j.id for j in reopened.store.jobs] == [job["id"]]
        assert reopened.store.last_sync_iso is not None

    def test_job_not_found(self, client):
        """Test lavoro inesistente."""
        response = client.get(f"{API}/jobs/999")

        assert response.status_code == 404
        assert response.json()["error_code"] == "RESOURCE_NOT_FOUND"
        assert client.post(f"{API}/jobs/999/payments", json={"amount": 1}).status_code == 404

    def test_lines(self, client):
        """Test righe lavoro: aggiunta, modifica, completamento, eliminazione."""
        job = _create_job(client)

        line = client.post(
            f"{API}/jobs/{job['id']}/lines", json={"desc": "Piastrelle", "qty": "2", "unitPrice": "15,5"}
        ).json()
        updated = client.patch(
            f"{API}/jobs/lines/{line['id']}", json={"field": "qty", "value": "4"}
        ).json()
        toggled = client.post(f"{API}/jobs/lines/{line['id']}/toggle").json()

        assert updated["qty"] == 4.0
        assert toggled["done"] is True
        assert client.get(f"{API}/jobs/{job['id']}").json()["linesCost"] == 62.0
        assert client.delete(f"{API}/jobs/lines/{line['id']}").status_code == 204
        assert client.delete(f"{API}/jobs/lines/{line['id']}").status_code == 404

    def test_list_views(self, client):
        """Test viste aperti e archiviati."""
        job = _create_job(client)
        client.post(f"{API}/jobs/{job['id']}/archive")

        assert client.get(f"{API}/jobs/", params={"view": "open"}).json() == []
        archived = client.get(f"{API}/jobs/", params={"view": "archived"}).json()
        assert [item["job"]["id"] for item in archived] == [job["id"]]
        assert client.post(f"{API}/jobs/{job['id']}/unarchive").json()["stato"] == "aperto"

    def test_cascade_delete_requires_confirmation(self, client):
        """Test eliminazione a cascata: 409 con anteprima, poi eliminazione."""
        job = _create_job(client, commessa="k-5")
        client.post(f"{API}/jobs/{job['id']}/payments", json={"amount": 100})
        client.post(
            f"{API}/purchases/",
            json={"fornitore": "Brico", "prodotto": "Colla", "unitPrice": 3, "commessa": "K-5"},
        )

        refused = client.delete(f"{API}/jobs/{job['id']}", params={"confirm": True})
        assert refused.status_code == 409
        assert refused.json()["error_code"] == "CONFIRMATION_REQUIRED"
        assert refused.json()["extra"]["preview"]["purchases"] == 1

        deleted = client.delete(
            f"{API}/jobs/{job['id']}", params={"confirm": True, "confirm_phrase": "ELIMINA"}
        )
        assert deleted.status_code == 200
        assert deleted.json()["payments"] == 1
        assert client.get(f"{API}/jobs/{job['id']}").status_code == 404
        assert client.get(f"{API}/purchases/").json() == []
        assert len(client.get(f"{API}/movements/").json()) == 1


# ============================================================
# Tests per i preventivi
# ============================================================


class TestQuotesApi:
    """Tests per /quotes."""

    def test_totals(self, client):
        """Test totali calcolati lato server."""
        quote = _create_quote(client)

        body = client.get(f"{API}/quotes/{quote['id']}").json()

        assert body["totals"] == {"taxable": 27.0, "vat": 5.94, "total": 32.94}
        assert body["number"] == 1

    def test_confirm_then_conflict(self, client):
        """Test conferma: lavoro creato, seconda conferma rifiutata."""
        quote = _create_quote(client)

        confirmed = client.post(f"{API}/quotes/{quote['id']}/confirm")
        again = client.post(f"{API}/quotes/{quote['id']}/confirm")

        assert confirmed.status_code == 201
        assert confirmed.json()["agreedTotal"] == 32.94
        assert confirmed.json()["quoteId"] == quote["id"]
        assert again.status_code == 409
        confirmation = client.get(f"{API}/quotes/{quote['id']}/confirmation").json()
        assert confirmation["confirmed"] is True

    def test_locked_quote_ignores_edits(self, client):
        """Test modifiche ignorate su un preventivo bloccato."""
        quote = _create_quote(client)
        client.post(f"{API}/quotes/{quote['id']}/lock")

        body = client.patch(
            f"{API}/quotes/{quote['id']}/lines", json={"index": 0, "field": "qty", "value": 10}
        ).json()

        assert body["status"] == "locked"
        assert body["righe"][0]["qty"] == 3.0

    def test_delete_guards(self, client):
        """Test eliminazione: conferma sempre, frase per i bloccati."""
        quote = _create_quote(client)
        client.post(f"{API}/quotes/{quote['id']}/lock")
        url = f"{API}/quotes/{quote['id']}"

        assert client.delete(url).status_code == 409
        assert client.delete(url, params={"confirm": True}).status_code == 409
        assert client.delete(url, params={"confirm": True, "confirm_phrase": "elimina"}).status_code == 200
        assert client.get(url).status_code == 404

    def test_reset_requires_confirm(self, client):
        """Test reset senza conferma."""
        quote = _create_quote(client)

        assert client.post(f"{API}/quotes/{quote['id']}/reset", json={}).status_code == 409
        body = client.post(f"{API}/quotes/{quote['id']}/reset", json={"confirm": True}).json()
        assert body["righe"] == []


# ============================================================
# Tests per acquisti e dati
# ============================================================


class TestPurchasesApi:
    """Tests per /purchases."""

    def test_history_and_stats(self, client):
        """Test storico filtrato e statistiche."""
        for price, date_iso in ((10, "2023-01-10T10:00:00Z"), (12, "2024-01-10T10:00:00Z")):
            client.post(
                f"{API}/purchases/",
                json={"fornitore": "Brico", "prodotto": "Stucco", "unitPrice": price, "dateISO": date_iso},
            )

        history = client.get(f"{API}/purchases/", params={"prodotto": "stu", "annoMin": 2024}).json()
        stats = client.get(f"{API}/purchases/stats", params={"prodotto": "stucco"}).json()

        assert [line["unitPrice"] for line in history] == [12.0]
        assert stats["lastPrice"] == 12.0
        assert stats["avgPrice"] == 11.0
        assert stats["count"] == 2


class TestStoreApi:
    """Tests per /store."""

    def test_export_import(self, client):
        """Test backup esportato e reimportato dopo un azzeramento."""
        _create_job(client)
        backup = client.get(f"{API}/store/export")
        assert backup.status_code == 200

        reset = client.post(f"{API}/store/reset", json={"confirm": True, "confirmPhrase": "RESET"})
        assert reset.json()["jobs"] == []

        imported = client.post(f"{API}/store/import", content=backup.content)
        assert imported.status_code == 200
        assert imported.json()["counts"]["jobs"] == 1

    def test_import_invalid(self, client):
        """Test import di un file non valido."""
        response = client.post(f"{API}/store/import", content=b'{"foo": 1}')

        assert response.status_code == 400
        assert response.json()["error_code"] == "IMPORT_FORMAT_ERROR"
        assert client.post(f"{API}/store/import", content=b'{"state": null}').status_code == 400

    def test_reset_wrong_phrase(self, client):
        """Test azzeramento senza frase corretta."""
        response = client.post(f"{API}/store/reset", json={"confirm": True, "confirmPhrase": "no"})

        assert response.status_code == 409

    def test_company_and_anagrafiche(self, client):
        """Test profilo ditta e anagrafiche."""
        store = client.patch(
            f"{API}/store/company",
            json={"companyName": "Rossi Srl", "companyInfo": {"piva": " 123 "}},
        ).json()
        client.post(f"{API}/store/anagrafiche", json={"tipo": "fornitore", "nome": "Edilcasa"})

        assert store["companyName"] == "Rossi Srl"
        assert store["companyInfo"]["piva"] == "123"
        assert client.get(f"{API}/store/anagrafiche").json()["fornitori"] == ["Edilcasa"]
        logo = client.put(f"{API}/store/company/logo", json={"companyLogoDataUrl": "http://x"})
        assert logo.status_code == 422
