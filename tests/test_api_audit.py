from app.services.permissions import ROLE_PRESETS


class TestAuditEndpoints:
    def test_list_requires_audit(self, client, token_for, reception) -> None:
        _, headers = token_for(reception, mask=int(ROLE_PRESETS["mesa_partes"]))
        resp = client.get("/audit-events", headers=headers)
        assert resp.status_code == 403

    def test_reception_is_audited(
        self, client, token_for, reception, received_document
    ) -> None:
        _, headers = token_for(reception, mask=int(ROLE_PRESETS["auditor"]))
        resp = client.get(
            "/audit-events",
            params={"document_id": str(received_document.id)},
            headers=headers,
        )
        assert resp.status_code == 200
        types = {e["event_type"] for e in resp.json()["items"]}
        assert "document.received" in types

    def test_denied_derivation_is_audited(
        self, client, auth_headers, token_for, reception, forensics, received_document
    ) -> None:
        outsider, headers = token_for(forensics, mask=int(ROLE_PRESETS["area_responsable"]))
        resp = client.post(
            f"/documents/{received_document.id}/derive",
            json={"destination_area_id": str(forensics.id)},
            headers=headers,
        )
        assert resp.status_code == 403

        resp = client.get(
            "/audit-events",
            params={"principal_id": str(outsider.id), "event_type": "access.denied"},
            headers=auth_headers,
        )
        items = resp.json()["items"]
        assert len(items) == 1
        assert items[0]["details"]["action"] == "derive_request"


class TestOperationalEndpoints:
    def test_health(self, client) -> None:
        assert client.get("/health").json() == {"status": "ok"}

    def test_metrics(self, client, token_for, reception) -> None:
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert "oficri_document_transitions_total" in resp.text
