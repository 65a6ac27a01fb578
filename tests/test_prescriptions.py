import pytest

from conftest import make_line
from rxprint.core.errors import NotFoundError, PersistenceError, ValidationError
from rxprint.services.prescriptions import (
    PARTIAL,
    SAVED,
    load_for_print,
    parse_form,
    parse_medicines,
    retry_medicines,
    save_prescription,
)


def _payload(**rx):
    data = {"patient_name": "Ayesha Noor", "patient_age": "29",
            "patient_sex": "Female", "diagnosis": "  migraine  "}
    data.update(rx)
    return {
        "prescription": data,
        "medicines": [
            {"medicine_name": "Sumatriptan", "medicine_type": "Tablet",
             "dosage_amount": "50mg", "dosage_pattern": "1+0+1",
             "duration_days": "3"},
            {"medicine_name": "", "medicine_type": "tablet"},
        ],
        "relation": "D/o Noor Ahmed",
    }


def test_parse_form_normalises_input():
    form = parse_form(_payload())
    rx = form.prescription
    assert rx.patient_age == 29
    assert rx.diagnosis == "migraine"
    assert rx.visit_no == 1
    assert rx.patient_contact is None
    med = form.medicines[0]
    assert (med.morning_dose, med.afternoon_dose, med.evening_dose) == (1, 0, 1)
    assert med.medicine_type == "tablet"
    assert "dosage_pattern" not in med.model_dump()
    assert [m.medicine_name for m in form.printable_medicines()] == ["Sumatriptan"]
    assert form.relation == "D/o Noor Ahmed"


def test_parse_form_blank_optionals_become_none():
    form = parse_form(_payload(patient_age="", patient_sex="", visit_no=""))
    assert form.prescription.patient_age is None
    assert form.prescription.patient_sex is None
    assert form.prescription.visit_no == 1


@pytest.mark.parametrize("override", [
    {"patient_name": "   "},
    {"patient_age": "-3"},
    {"patient_sex": "Other"},
    {"visit_no": 0},
])
def test_parse_form_rejects(override):
    with pytest.raises(ValidationError) as exc:
        parse_form(_payload(**override))
    assert exc.value.errors


def test_parse_form_reports_bad_pattern_and_type():
    payload = _payload()
    payload["medicines"][0]["dosage_pattern"] = "1+0"
    payload["medicines"][1]["medicine_type"] = "powder"
    with pytest.raises(ValidationError) as exc:
        parse_form(payload)
    joined = " ".join(exc.value.errors)
    assert "3 parts" in joined
    assert "powder" in joined


def test_parse_medicines_indexes_errors():
    with pytest.raises(ValidationError) as exc:
        parse_medicines([{"medicine_name": "A"}, {"medicine_name": "B",
                                                  "morning_dose": -1}])
    assert exc.value.errors[0].startswith("medicines.1.")


def test_save_prescription(store):
    result = save_prescription(store, parse_form(_payload()))
    assert result.status == SAVED
    assert not result.is_partial
    assert [m.medicine_name for m in result.medicines] == ["Sumatriptan"]
    rx, meds = load_for_print(store, result.prescription.id)
    assert rx.diagnosis == "migraine"
    assert len(meds) == 1


def test_save_without_medicines(store):
    payload = _payload()
    payload["medicines"] = []
    result = save_prescription(store, parse_form(payload))
    assert result.status == SAVED
    assert result.medicines == []


def test_partial_save_then_retry(memory_store):
    memory_store.fail_medicines = True
    result = save_prescription(memory_store, parse_form(_payload()))
    assert result.status == PARTIAL
    assert result.error
    rx_id = result.prescription.id
    assert memory_store.get_prescription(rx_id).patient_name == "Ayesha Noor"
    assert memory_store.list_medicine_lines(rx_id) == []

    saved = retry_medicines(memory_store, rx_id, [make_line("Sumatriptan")])
    assert [m.medicine_name for m in saved] == ["Sumatriptan"]

    with pytest.raises(ValidationError):
        retry_medicines(memory_store, rx_id, [make_line("Again")])


def test_retry_unknown_prescription(memory_store):
    with pytest.raises(NotFoundError):
        retry_medicines(memory_store, "missing", [make_line()])


def test_prescription_write_failure_propagates(memory_store, monkeypatch):
    def boom(data):
        raise PersistenceError("store offline")

    monkeypatch.setattr(memory_store, "create_prescription", boom)
    with pytest.raises(PersistenceError):
        save_prescription(memory_store, parse_form(_payload()))
    assert memory_store.list_prescriptions() == []
