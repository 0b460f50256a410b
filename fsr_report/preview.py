"""
Live A4 preview of a field service report.

``render_preview_html`` returns a standalone HTML document. The report itself
lives in the ``#preview`` element, which is what gets captured for PDF export.
"""
import html

from .config import PREVIEW_ELEMENT_ID, PREVIEW_PADDING_PX, PREVIEW_WIDTH_PX
from .models import JOB_TYPE_LABELS, SERVICE_TYPE_LABELS, FsrRecord

STYLE = """
* { box-sizing: border-box; }
html, body { margin: 0; padding: 0; background: #ffffff; }
body { font-family: Arial, Helvetica, sans-serif; color: #111827; }
#%(id)s { width: %(width)dpx; padding: %(padding)dpx; background: #ffffff; font-size: 12px; line-height: 1.375; }
.header { display: flex; justify-content: space-between; align-items: flex-start; }
.brand { display: flex; align-items: center; gap: 12px; }
.brand img { width: 56px; height: 56px; object-fit: contain; }
.brand h2 { font-size: 18px; font-weight: 700; margin: 0; }
.muted { font-size: 12px; color: #4b5563; }
.timing { width: 240px; border: 1px solid #e5e7eb; border-radius: 4px; padding: 8px; }
.timing .grid { display: grid; grid-template-columns: repeat(3, 1fr); row-gap: 4px; }
.timing .rule { grid-column: span 3; height: 1px; background: #e5e7eb; margin: 4px 0; }
.span2 { grid-column: span 2; }
.span3 { grid-column: span 3; }
.b { font-weight: 600; }
.customer { margin-top: 8px; display: grid; grid-template-columns: 1fr 1fr; column-gap: 24px; row-gap: 4px; width: 540px; }
.types { margin-top: 12px; display: grid; grid-template-columns: 1fr 1fr; gap: 12px; }
.card { border: 1px solid #e5e7eb; border-radius: 4px; padding: 8px; }
.chips { display: flex; flex-wrap: wrap; gap: 8px; font-size: 11px; }
.chip { display: inline-flex; align-items: center; height: 24px; line-height: 24px; padding: 0 8px; border-radius: 6px; border: 1px solid #9ca3af; background: #f3f4f6; color: #4b5563; white-space: nowrap; font-weight: 500; }
.chip.on { background: #000000; color: #ffffff; border-color: #000000; }
.box { border: 1px solid #e5e7eb; border-radius: 4px; padding: 8px; margin: 12px 0; min-height: 120px; }
.box .title { font-weight: 600; margin-bottom: 8px; }
.pre { white-space: pre-wrap; }
.pair { display: grid; grid-template-columns: 1fr 1fr; gap: 12px; }
.pair .card { min-height: 120px; }
table { width: 100%%; border-collapse: collapse; margin-top: 4px; font-size: 11px; }
th, td { border: 1px solid #e5e7eb; padding: 4px 8px; }
th { background: #f3f4f6; }
.c { text-align: center; }
.gallery { display: grid; grid-template-columns: 1fr 1fr; gap: 12px; }
.photo { border: 1px solid #e5e7eb; border-radius: 4px; overflow: hidden; }
.photo img { width: 100%%; aspect-ratio: 16 / 9; object-fit: contain; background: #f9fafb; display: block; }
.caption { padding: 4px 8px; font-size: 11px; }
.signatures { margin-top: 40px; display: grid; grid-template-columns: 1fr 1fr; gap: 40px; text-align: center; }
.sign { height: 80px; display: flex; align-items: center; justify-content: center; }
.sign img { max-height: 64px; object-fit: contain; }
.signer { border-top: 1px solid #e5e7eb; padding-top: 8px; }
""" % {"id": PREVIEW_ELEMENT_ID, "width": PREVIEW_WIDTH_PX, "padding": PREVIEW_PADDING_PX}


def _esc(value) -> str:
    return html.escape(str(value if value is not None else ""), quote=True)


def _safe_image_src(raw) -> str:
    value = (raw or "").strip()
    if value.startswith("data:image/"):
        return value
    return ""


def _img(raw, alt: str = "") -> str:
    src = _safe_image_src(raw)
    return f'<img src="{_esc(src)}" alt="{_esc(alt)}" />' if src else ""


def Header(record: FsrRecord) -> str:
    rows = [
        ("Start Travel", record.start_travel_date, record.start_travel_time),
        ("Arrived", record.arrived_date, record.arrived_time),
        ("Work Start", record.work_start_date, record.work_start_time),
        ("Work Finish", record.work_finish_date, record.work_finish_time),
    ]
    timing = "".join(
        f'<div class="b">{label}</div><div>{_esc(date)}</div><div>{_esc(time)}</div>'
        for label, date, time in rows
    )
    return f"""
    <div class="header">
      <div class="brand">
        {_img(record.logo, "logo")}
        <div>
          <h2>FIELD SERVICE REPORT</h2>
          <div class="muted">{_esc(record.fsr_no)}</div>
        </div>
      </div>
      <div class="timing">
        <div class="grid">
          <div class="b span2">SWO No.</div><div>{_esc(record.swo_no)}</div>
          <div class="rule"></div>
          {timing}
          <div class="b">Breakdown</div><div class="span2">{_esc(record.breakdown)}</div>
        </div>
      </div>
    </div>
    """


def CustomerGrid(record: FsrRecord) -> str:
    contact = _esc(record.contact_person)
    if record.phone:
        contact += f" (Tel: {_esc(record.phone)})"
    items = [
        ("Customer Name", _esc(record.customer_name)),
        ("Address", _esc(record.address)),
        ("Contact Person", contact),
        ("Modality", _esc(record.modality)),
        ("Model", _esc(record.model)),
        ("Serial No.", _esc(record.serial_no)),
        ("Product No.", _esc(record.product_no)),
    ]
    cells = "".join(f'<div class="b">{label}</div><div>{value}</div>' for label, value in items)
    return f'<div class="customer">{cells}</div>'


def Chips(title: str, flags, labels: dict) -> str:
    chips = "".join(
        f'<span class="chip{" on" if getattr(flags, key) else ""}">{_esc(label)}</span>'
        for key, label in labels.items()
    )
    return f"""
    <div class="card">
      <div class="b" style="margin-bottom: 4px">{_esc(title)}</div>
      <div class="chips">{chips}</div>
    </div>
    """


def Box(title: str, body) -> str:
    return f"""
    <div class="box">
      <div class="title">{_esc(title)}</div>
      <div class="pre">{_esc(body)}</div>
    </div>
    """


def PartsTable(record: FsrRecord) -> str:
    used = [p for p in record.parts if not p.is_blank()]
    rows = "".join(
        f"""
        <tr>
          <td class="c">{i}</td>
          <td>{_esc(p.part_name)}</td>
          <td>{_esc(p.part_no)}</td>
          <td class="c">{_esc(p.qty)}</td>
          <td>{_esc(p.status)}</td>
        </tr>
        """
        for i, p in enumerate(used, start=1)
    )
    if not used:
        rows = '<tr><td class="c" colspan="5">-</td></tr>'
    return f"""
    <table>
      <thead>
        <tr><th style="width: 40px">No</th><th>Part Name</th><th>Part No</th><th style="width: 40px">Qty</th><th>Status</th></tr>
      </thead>
      <tbody>{rows}</tbody>
    </table>
    """


def Gallery(record: FsrRecord) -> str:
    if not record.photos:
        return ""
    tiles = []
    for i, photo in enumerate(record.photos, start=1):
        caption = f'<div class="caption">{i}. {_esc(photo.caption)}</div>' if photo.caption else ""
        tiles.append(f'<div class="photo">{_img(photo.src, "evidence")}{caption}</div>')
    return f"""
    <div class="box" style="min-height: 0">
      <div class="title">Evidence Photos</div>
      <div class="gallery">{"".join(tiles)}</div>
    </div>
    """


def Signatures(record: FsrRecord) -> str:
    signers = [
        (record.fse_sign, record.fse_name or "Field Service Engineer"),
        (record.trainer_sign, record.trainer_name or "Trainer / L2"),
    ]
    blocks = "".join(
        f"""
        <div>
          <div class="sign">{_img(sign, "signature")}</div>
          <div class="signer">{_esc(name)}</div>
        </div>
        """
        for sign, name in signers
    )
    return f'<div class="signatures">{blocks}</div>'


def render_preview_html(record: FsrRecord) -> str:
    body = "".join([
        Header(record),
        CustomerGrid(record),
        f"""
        <div class="types">
          {Chips("Job type :", record.job_types, JOB_TYPE_LABELS)}
          {Chips("Service Type :", record.service_types, SERVICE_TYPE_LABELS)}
        </div>
        """,
        Box("Problem :", record.problem),
        Box("Action :", record.action),
        f"""
        <div class="pair">
          <div class="card">
            <div class="b" style="margin-bottom: 4px">Job status :</div>
            <div>{_esc(record.job_status)}</div>
            <div class="b" style="margin-top: 8px">Part Used:</div>
            {PartsTable(record)}
            <div style="margin-top: 8px">Status : <span class="b">{_esc(record.status_chargeable)}</span></div>
          </div>
          <div class="card">
            <div class="b" style="margin-bottom: 4px">CONDITION WHEN LEAVE :</div>
            <div class="pre">{_esc(record.condition_when_leave)}</div>
          </div>
        </div>
        """,
        Gallery(record),
        Signatures(record),
    ])
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8" />
<title>{_esc(record.fsr_no)}</title>
<style>{STYLE}</style>
</head>
<body>
<div id="{PREVIEW_ELEMENT_ID}">{body}</div>
</body>
</html>
"""
