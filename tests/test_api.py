# tests/test_api.py
# HTTP surface tests against the in-memory store and the fake extraction agent

from compliance_engine.errors import AgentUnavailable

from conftest import AGENT_PAYLOAD


PDF_UPLOAD = {"file": ("MH12AB1234_policy.pdf", b"%PDF-1.4 policy scan", "application/pdf")}


def create_vehicle(client, registration="MH12AB1234", **extra):
    response = client.post("/api/vehicles", json={"registration_number": registration, **extra})
    assert response.status_code == 200, response.text
    return response.json()


def add_insurance(client, vehicle_id, expiry, policy_number="POL-1"):
    response = client.post(f"/api/vehicles/{vehicle_id}/documents", json={
        "document_type": "Insurance",
        "policy_number": policy_number,
        "expiry_date": expiry,
    })
    assert response.status_code == 200, response.text
    return response.json()


class TestRootEndpoints:

    def test_root_lists_modules(self, client):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "operational"
        assert set(data["modules"]) == {"vehicles", "alerts", "document_inbox", "reports"}
        assert all("routers" not in info for info in data["modules"].values())

    def test_health_reports_components(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] in ("healthy", "degraded")
        assert "store" in data["components"]


class TestVehicleEndpoints:

    def test_create_vehicle_starts_missing_info(self, client):
        vehicle = create_vehicle(client, "mh12 ab 1234", vehicle_type="Bus")

        assert vehicle["registration_number"] == "MH12 AB 1234"
        assert vehicle["status"] == "MissingInfo"
        assert vehicle["total_documents"] == 0

    def test_duplicate_registration_rejected(self, client):
        create_vehicle(client, "MH12AB1234")

        response = client.post("/api/vehicles", json={"registration_number": "MH-12-AB-1234"})

        assert response.status_code == 400

    def test_invalid_registration_rejected(self, client):
        response = client.post("/api/vehicles", json={"registration_number": "MH12@AB"})

        assert response.status_code == 400

    def test_unknown_vehicle_is_404(self, client):
        assert client.get("/api/vehicles/does-not-exist").status_code == 404
        assert client.get("/api/vehicles/does-not-exist/status").status_code == 404

    def test_list_filters_by_badge(self, client):
        overdue = create_vehicle(client, "MH12AB1234")
        create_vehicle(client, "KA01CD5678")
        add_insurance(client, overdue["id"], "2024-01-01")

        response = client.get("/api/vehicles", params={"status": "Overdue"})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["vehicles"][0]["id"] == overdue["id"]

    def test_delete_vehicle(self, client):
        vehicle = create_vehicle(client)

        response = client.delete(f"/api/vehicles/{vehicle['id']}")

        assert response.status_code == 200
        assert response.json()["success"] == True
        assert client.get(f"/api/vehicles/{vehicle['id']}").status_code == 404


class TestDocumentEndpoints:

    def test_upload_updates_status_and_alerts(self, client):
        vehicle = create_vehicle(client)

        result = add_insurance(client, vehicle["id"], "2024-01-01")

        assert result["document"]["status"] == "Overdue"
        assert result["document"]["days_remaining"] == -14
        assert result["vehicle_status"] == "Overdue"
        assert result["alerts"]["created"] == 1

    def test_latest_document_is_most_recent_upload(self, client):
        vehicle = create_vehicle(client)
        add_insurance(client, vehicle["id"], "2025-06-30", policy_number="POL-OLD")
        add_insurance(client, vehicle["id"], "2024-03-01", policy_number="POL-NEW")

        response = client.get(
            f"/api/vehicles/{vehicle['id']}/documents/latest",
            params={"document_type": "Insurance"},
        )

        assert response.status_code == 200
        assert response.json()["policy_number"] == "POL-NEW"

    def test_latest_document_missing_is_404(self, client):
        vehicle = create_vehicle(client)

        response = client.get(
            f"/api/vehicles/{vehicle['id']}/documents/latest",
            params={"document_type": "Fitness"},
        )

        assert response.status_code == 404

    def test_history_keeps_every_upload(self, client):
        vehicle = create_vehicle(client)
        add_insurance(client, vehicle["id"], "2024-01-01")
        add_insurance(client, vehicle["id"], "2025-01-01")

        response = client.get(f"/api/vehicles/{vehicle['id']}/documents")

        assert response.status_code == 200
        assert response.json()["total"] == 2

    def test_upload_to_unknown_vehicle_is_404(self, client):
        response = client.post("/api/vehicles/nope/documents", json={
            "document_type": "Insurance",
            "expiry_date": "2025-01-01",
        })

        assert response.status_code == 404

    def test_status_lists_every_essential_series(self, client):
        vehicle = create_vehicle(client)
        add_insurance(client, vehicle["id"], "2024-02-01")

        response = client.get(f"/api/vehicles/{vehicle['id']}/status")

        assert response.status_code == 200
        data = response.json()
        series = {item["document_type"]: item["status"] for item in data["series"]}
        assert series["Insurance"] == "ExpiringSoon"
        assert series["Fitness"] == "Missing"
        assert data["evaluated_on"] == "2024-01-15"


class TestAlertEndpoints:

    def test_mark_read_lowers_unread_count(self, client):
        vehicle = create_vehicle(client)
        add_insurance(client, vehicle["id"], "2024-01-01")

        alerts = client.get("/api/alerts").json()
        assert alerts["unread"] == 1
        alert_id = alerts["alerts"][0]["id"]

        response = client.post(f"/api/alerts/{alert_id}/read", headers={"X-User-Id": "fleet-manager"})

        assert response.status_code == 200
        assert response.json()["is_read"] == True
        assert client.get("/api/alerts/unread-count").json()["unread"] == 0

    def test_mark_unknown_alert_is_404(self, client):
        assert client.post("/api/alerts/missing/read").status_code == 404


class TestInboxEndpoints:

    def test_extract_returns_preview_without_saving(self, client, agent):
        response = client.post("/api/inbox/extract", files=PDF_UPLOAD)

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["document_type"] == "Insurance"
        assert data["fields"]["expiry_date"]["agent_value"] == "2025-01-31"
        assert data["filename_registration"] == "MH12AB1234"
        assert data["matched_vehicle_id"] is None
        assert agent.calls == 1
        assert client.get("/api/vehicles").json()["total"] == 0

    def test_extract_rejects_unsupported_type(self, client, agent):
        response = client.post(
            "/api/inbox/extract",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400
        assert agent.calls == 0

    def test_agent_failure_offers_manual_entry(self, client, agent):
        agent.error = AgentUnavailable("provider down")

        response = client.post("/api/inbox/extract", files=PDF_UPLOAD)

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["manual_entry"] == True
        assert detail["retryable"] == True

    def test_agent_found_nothing_opens_blank_form(self, client, agent):
        agent.payload = {key: None for key in AGENT_PAYLOAD}

        response = client.post("/api/inbox/extract", files={"file": ("scan_0001.pdf", b"%PDF-1.4", "application/pdf")})

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["agent_found_nothing"] == True
        assert all(field["value"] is None for field in data["fields"].values())
        assert data["document_type"] == "Other"
        assert data["custom_type_name"] == "Unidentified document"
        assert data["needs_type_review"] == True

    def test_confirm_creates_vehicle_from_registration(self, client, agent):
        preview = client.post("/api/inbox/extract", files=PDF_UPLOAD).json()

        response = client.post("/api/inbox/confirm", json={
            "agent_output": preview["agent_output"],
            "corrections": {"policy_number": "POL-2024-XYZ"},
            "document_name": "MH12AB1234_policy.pdf",
        })

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["vehicle_created"] == True
        assert data["vehicle_registration"] == "MH12AB1234"
        assert data["document"]["policy_number"] == "POL-2024-XYZ"
        assert data["document"]["expiry_date"] == "2025-01-31"

    def test_find_vrn_falls_back_to_filename(self, client):
        response = client.post("/api/inbox/find-vrn", json={
            "text": "no registration here",
            "filename": "KA01CD5678_fitness.pdf",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["vrn"] == "KA01CD5678"
        assert data["source"] == "filename"


class TestReportEndpoints:

    def test_summary_counts(self, client):
        vehicle = create_vehicle(client)
        add_insurance(client, vehicle["id"], "2024-01-01")
        create_vehicle(client, "KA01CD5678")

        response = client.get("/api/reports/summary")

        assert response.status_code == 200
        data = response.json()
        assert data["total_vehicles"] == 2
        assert data["documents"]["overdue"] == 1

    def test_expiring_documents_filter(self, client):
        vehicle = create_vehicle(client)
        add_insurance(client, vehicle["id"], "2024-01-01")

        response = client.get("/api/reports/expiring-documents", params={"status": "Overdue"})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["documents"][0]["days_difference"] == -14

    def test_audit_logs_record_actor(self, client):
        client.post("/api/vehicles", json={"registration_number": "MH12AB1234"}, headers={"X-User-Id": "alice"})

        response = client.get("/api/reports/audit-logs", params={"actor_id": "alice"})

        assert response.status_code == 200
        entries = response.json()["entries"]
        assert entries[0]["action"] == "CREATE_VEHICLE"

    def test_audit_logs_reject_inverted_range(self, client):
        response = client.get("/api/reports/audit-logs", params={
            "start_date": "2024-02-01",
            "end_date": "2024-01-01",
        })

        assert response.status_code == 400
