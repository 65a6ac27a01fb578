from io import BytesIO, StringIO

from conftest import make_line, make_rx
from rxprint.services.compositor import compose
from rxprint.services.print_surface import (
    HtmlPrintSurface,
    PdfPrintSurface,
    render_html,
    render_pdf,
)


def _doc(n=2, **rx):
    lines = [make_line(f"Medicine {i}", medicine_name_urdu="دوا") for i in range(n)]
    return compose(make_rx(**rx), lines)


def test_pdf_bytes():
    pdf = render_pdf(_doc(), title="RX_test")
    assert pdf.startswith(b"%PDF")
    assert b"%%EOF" in pdf[-32:]


def test_pdf_one_page_per_composed_page():
    doc = _doc(30)
    assert len(doc.pages) > 1
    pdf = render_pdf(doc)
    assert pdf.count(b"/Type /Page") - pdf.count(b"/Type /Pages") == len(doc.pages)


def test_pdf_missing_background_still_prints(tmp_path, caplog):
    buf = BytesIO()
    PdfPrintSurface(buf, background_path=str(tmp_path / "nope.jpg")).print_document(_doc())
    assert buf.getvalue().startswith(b"%PDF")
    assert "Background image not found" in caplog.text


def test_html_positions_and_escapes():
    html = render_html(_doc(1, patient_name="<Ali & Sons>"),
                       background_url="/media/bg.jpg",
                       auto_print=False)
    assert 'class="page"' in html
    assert "&lt;Ali &amp; Sons&gt;" in html
    assert "<Ali" not in html
    assert 'src="/media/bg.jpg"' in html
    assert 'dir="rtl"' in html
    assert "top: 291px" in html
    assert "window.print" not in html


def test_html_auto_print_script():
    buf = StringIO()
    HtmlPrintSurface(buf).print_document(_doc(0))
    out = buf.getvalue()
    assert "window.print()" in out
    assert "background-image" in out
    assert '<img src=' not in out
