API = "/api"


def _form(**rx):
    data = {"patient_name": "Hamza Ali", "ref_no": "OPD-42", "diagnosis": "Otitis media"}
    data.update(rx)
    return {
        "prescription": data,
        "medicines": [
            {"medicine_name": "Amoxicillin", "medicine_type": "syrup",
             "dosage_amount": "5 ml", "dosage_pattern": "1+1+1",
             "duration_days": 7},
            {"medicine_name": ""},
        ],
    }


def _create(client, **rx):
    r = client.post(f"{API}/prescriptions", json=_form(**rx))
    assert r.status_code == 201, r.text
    return r.json()["data"]


def test_health(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["record_store"] == "memory"


def test_create_and_fetch(client):
    data = _create(client)
    assert data["status"] == "saved"
    assert len(data["medicines"]) == 1
    rx_id = data["prescription"]["id"]

    r = client.get(f"{API}/prescriptions/{rx_id}")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] is True
    assert body["data"]["patient_name"] == "Hamza Ali"
    assert body["data"]["medicines"][0]["evening_dose"] == 1


def test_create_invalid_returns_422(client):
    r = client.post(f"{API}/prescriptions",
                    json={"prescription": {"patient_name": " "}, "medicines": []})
    assert r.status_code == 422
    body = r.json()
    assert body["status"] is False
    assert body["data"]["errors"]


def test_partial_save_returns_207_and_retry(client, app):
    app.state.record_store.fail_medicines = True
    r = client.post(f"{API}/prescriptions", json=_form())
    assert r.status_code == 207
    data = r.json()["data"]
    assert data["status"] == "partial"
    rx_id = data["prescription"]["id"]

    r = client.post(f"{API}/prescriptions/{rx_id}/medicines",
                    json={"medicines": _form()["medicines"]})
    assert r.status_code == 201, r.text
    assert [m["medicine_name"] for m in r.json()["data"]] == ["Amoxicillin"]


def test_list_and_search(client):
    _create(client, patient_name="Sana", ref_no="A-1")
    _create(client, patient_name="Usman", ref_no="B-2")
    r = client.get(f"{API}/prescriptions")
    names = [p["patient_name"] for p in r.json()["data"]]
    assert names == ["Usman", "Sana"]

    r = client.get(f"{API}/prescriptions", params={"q": "a-1"})
    assert [p["patient_name"] for p in r.json()["data"]] == ["Sana"]


def test_missing_prescription_404(client):
    r = client.get(f"{API}/prescriptions/nope")
    assert r.status_code == 404
    assert r.json()["error"]["msg"] == "Prescription not found"


def test_pdf(client):
    rx_id = _create(client)["prescription"]["id"]
    r = client.get(f"{API}/prescriptions/{rx_id}/pdf", params={"relation": "S/o Ali"})
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/pdf"
    assert 'filename="RX_OPD-42.pdf"' in r.headers["content-disposition"]
    assert r.content.startswith(b"%PDF")


def test_pdf_overflow_warn_returns_409(client):
    form = _form()
    form["medicines"] = [{"medicine_name": f"Med {i}"} for i in range(30)]
    r = client.post(f"{API}/prescriptions", json=form)
    rx_id = r.json()["data"]["prescription"]["id"]

    r = client.get(f"{API}/prescriptions/{rx_id}/pdf", params={"overflow": "warn"})
    assert r.status_code == 409
    data = r.json()["data"]
    assert data["total"] == 30
    assert data["placed"] + data["omitted"] == 30

    r = client.get(f"{API}/prescriptions/{rx_id}/pdf", params={"overflow": "sideways"})
    assert r.status_code == 422


def test_print_html(client):
    rx_id = _create(client)["prescription"]["id"]
    r = client.get(f"{API}/prescriptions/{rx_id}/print", params={"auto_print": False})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    assert "Hamza Ali" in r.text
    assert "window.print" not in r.text


def test_draft_print_without_saving(client):
    r = client.post(f"{API}/prescriptions/print", json=_form())
    assert r.status_code == 200
    assert r.content.startswith(b"%PDF")
    assert client.get(f"{API}/prescriptions").json()["data"] == []


def test_layouts(client):
    r = client.get(f"{API}/layouts")
    assert "overlay@1" in [t["label"] for t in r.json()["data"]]
    r = client.get(f"{API}/layouts/overlay")
    assert r.json()["data"]["medicine_block"]["x"] == 327
    assert client.get(f"{API}/layouts/letter").status_code == 404


def test_unknown_layout_for_print(client):
    rx_id = _create(client)["prescription"]["id"]
    r = client.get(f"{API}/prescriptions/{rx_id}/pdf", params={"template": "letter"})
    assert r.status_code == 404


def test_dosage_endpoints(client):
    r = client.get(f"{API}/dosage/patterns")
    assert {"value": "1+0+1", "label": "Twice daily",
            "description": "1 morning, 1 evening"} in r.json()["data"]

    r = client.get(f"{API}/dosage/describe", params={"pattern": "2+0+1"})
    assert r.json()["data"]["description"] == "2 morning, 1 evening"

    r = client.get(f"{API}/dosage/describe", params={"frequency": "TDS"})
    assert r.json()["data"]["pattern"] == "1+1+1"

    r = client.get(f"{API}/dosage/describe", params={"pattern": "1+0"})
    assert r.status_code == 422


def test_sql_app_creates_tables_on_startup(monkeypatch):
    import rxprint.db.init_db as db_setup
    from fastapi.testclient import TestClient
    from rxprint.main import create_app

    calls = []
    real_init = db_setup.init_db

    def recording_init(bind):
        calls.append(bind)
        return real_init(bind)

    monkeypatch.setattr(db_setup, "init_db", recording_init)
    app = create_app("sql")
    assert calls == []

    with TestClient(app) as c:
        assert len(calls) == 1
        rx_id = _create(c, patient_name="Sql Patient")["prescription"]["id"]
        r = c.get(f"{API}/prescriptions/{rx_id}")
        assert r.status_code == 200
        assert r.json()["data"]["medicines"][0]["medicine_name"] == "Amoxicillin"
