from dataclasses import replace

import pytest

from rxprint.core.errors import NotFoundError
from rxprint.services.layout import (
    OVERLAY_V1,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    FieldSlot,
    LayoutTemplate,
    WrapPolicy,
    available_templates,
    get_template,
    register_template,
    validate_template,
)


def test_overlay_is_valid():
    assert validate_template(OVERLAY_V1) is OVERLAY_V1


def test_overlay_fields_inside_page_and_disjoint():
    boxes = [f.box() for f in OVERLAY_V1] + [OVERLAY_V1.medicine_block.box()]
    for x0, y0, x1, y1 in boxes:
        assert 0 <= x0 < x1 <= PAGE_WIDTH
        assert 0 <= y0 < y1 <= PAGE_HEIGHT
    for i, a in enumerate(boxes):
        for b in boxes[i + 1:]:
            assert a[2] <= b[0] or b[2] <= a[0] or a[3] <= b[1] or b[3] <= a[1]


def test_slot_lookup():
    name = OVERLAY_V1.slot("patient_name")
    assert (name.x, name.y, name.width) == (127, 291, 330)
    assert name.identifying
    assert OVERLAY_V1.slot("nope") is None
    assert OVERLAY_V1.slot("diagnosis").wrap is WrapPolicy.WRAP
    assert OVERLAY_V1.slot("diagnosis").max_lines == 3
    assert OVERLAY_V1.slot("ref_no").max_lines == 1


def test_center_aligned_text_x():
    visit_no = OVERLAY_V1.slot("visit_no")
    assert visit_no.text_x == visit_no.x + visit_no.width / 2


def test_as_dict_shape():
    d = OVERLAY_V1.as_dict()
    assert d["name"] == "overlay"
    assert d["page"] == {"width": 794, "height": 1123,
                         "background": "prescription-bg.jpg"}
    assert [f["key"] for f in d["fields"]] == OVERLAY_V1.keys
    assert d["medicine_block"]["y"] == 477


def test_get_template_latest_and_versioned():
    assert get_template("overlay") is OVERLAY_V1
    assert get_template("overlay", 1) is OVERLAY_V1
    with pytest.raises(NotFoundError):
        get_template("overlay", 99)
    with pytest.raises(NotFoundError):
        get_template("letter")


def test_register_newer_version_wins():
    v2 = replace(OVERLAY_V1, name="overlay-test", version=2)
    v1 = replace(OVERLAY_V1, name="overlay-test", version=1)
    register_template(v2)
    register_template(v1)
    assert get_template("overlay-test").version == 2
    assert v1 in available_templates()


def test_validate_rejects_overlap():
    bad = replace(OVERLAY_V1,
                  name="broken",
                  fields=OVERLAY_V1.fields +
                  (FieldSlot("extra", 130, 295, 100),))
    with pytest.raises(ValueError, match="overlap"):
        validate_template(bad)


def test_validate_rejects_out_of_page():
    bad = LayoutTemplate(
        name="broken",
        version=1,
        fields=(FieldSlot("patient_name", 700, 10, 200),),
        medicine_block=OVERLAY_V1.medicine_block,
    )
    with pytest.raises(ValueError):
        validate_template(bad)


def test_validate_rejects_duplicate_keys():
    slot = OVERLAY_V1.slot("ref_no")
    bad = replace(OVERLAY_V1,
                  name="broken",
                  fields=(slot, replace(slot, y=10)))
    with pytest.raises(ValueError, match="duplicate"):
        validate_template(bad)
