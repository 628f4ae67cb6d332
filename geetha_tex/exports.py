# exports.py
import csv
import io
import datetime as dt
from typing import List
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import cm
from reportlab.pdfgen import canvas
from geetha_tex.domain import Backup, Batch, CalculatedBatch, Settings

MONTH_CSV_HEADERS = ["Batch Number", "Machine", "Start Date", "Meter", "Ftotal", "Average"]
MACHINE_CSV_HEADERS = ["Batch Number", "Start Date", "Meter", "Ftotal", "Average"]

BACKUP_FILENAME = "geetha_tex_backup.json"

TEAL = (15 / 255, 118 / 255, 110 / 255)
BLUE = (37 / 255, 99 / 255, 235 / 255)


# ------------------------------------------------------------------
# PDF bill for one batch
# ------------------------------------------------------------------
def bill_filename(batch: CalculatedBatch) -> str:
    return f"bill_batch_{batch.batch_number}.pdf"


def _header(c, company_name: str):
    width, height = A4
    c.setFillColorRGB(*BLUE)
    c.setFont("Helvetica-Bold", 22)
    c.drawCentredString(width / 2, height - 2.0 * cm, company_name)
    c.setFillColorRGB(0.16, 0.16, 0.16)
    c.setFont("Helvetica-Bold", 18)
    c.drawCentredString(width / 2, height - 2.8 * cm, "Production Bill")
    c.setLineWidth(0.5)
    c.line(1.5 * cm, height - 4.0 * cm, width - 1.5 * cm, height - 4.0 * cm)


def _footer(c, page: int, pages: int):
    width, _ = A4
    c.setFont("Helvetica", 10)
    c.setFillColorRGB(0.6, 0.6, 0.6)
    c.drawRightString(width - 1.5 * cm, 1.2 * cm, f"Page {page} of {pages}")
    c.drawString(1.5 * cm, 1.2 * cm, "Thank you for your business!")


def bill_rows(batch: CalculatedBatch):
    return [
        ("Machine Number", f"Machine #{batch.machine_number}"),
        ("Start Date", batch.start_date.isoformat()),
        ("Meter Processed", f"{batch.meter_value:.2f} m"),
        ("Calculated FTotal", f"{batch.ftotal}"),
        ("Average (Meter/FTotal)", f"{batch.average:.2f}"),
    ]


def bill_pdf(batch: CalculatedBatch, settings: Settings, today: dt.date = None) -> bytes:
    """Single-page A4 bill: header, batch line, Description/Details table, footer."""
    today = today or dt.date.today()
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"Bill for Batch {batch.batch_number}")
    width, height = A4

    _header(c, settings.company_name)

    c.setFillColorRGB(0, 0, 0)
    c.setFont("Helvetica", 12)
    y = height - 5.0 * cm
    c.drawString(1.5 * cm, y, f"Bill for Batch: {batch.batch_number}")
    c.drawRightString(width - 1.5 * cm, y, f"Date Generated: {today.isoformat()}")

    # Table head
    y -= 1.2 * cm
    row_h = 0.9 * cm
    left, mid, right = 1.5 * cm, 8.5 * cm, width - 1.5 * cm
    c.setFillColorRGB(*TEAL)
    c.rect(left, y - 0.3 * cm, right - left, row_h, stroke=0, fill=1)
    c.setFillColorRGB(1, 1, 1)
    c.setFont("Helvetica-Bold", 11)
    c.drawString(left + 0.3 * cm, y, "Description")
    c.drawString(mid, y, "Details")

    # Striped body
    c.setFont("Helvetica", 11)
    for i, (label, value) in enumerate(bill_rows(batch)):
        y -= row_h
        if i % 2 == 0:
            c.setFillColorRGB(0.96, 0.96, 0.96)
            c.rect(left, y - 0.3 * cm, right - left, row_h, stroke=0, fill=1)
        c.setFillColorRGB(0, 0, 0)
        c.drawString(left + 0.3 * cm, y, label)
        c.drawString(mid, y, value)

    _footer(c, 1, 1)
    c.showPage()
    c.save()
    return buf.getvalue()


# ------------------------------------------------------------------
# CSV exports
# ------------------------------------------------------------------
def _csv_row(batch: CalculatedBatch, headers: List[str]):
    values = {
        "Batch Number": batch.batch_number,
        "Machine": batch.machine_number,
        "Start Date": batch.start_date.isoformat(),
        "Meter": batch.meter_value,
        "Ftotal": batch.ftotal,
        "Average": batch.average,
    }
    return [values[h] for h in headers]


def _number(value):
    # Whole numbers print without a trailing ".0"
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def to_csv(batches: List[CalculatedBatch], headers: List[str]) -> str:
    # Bare header row, then strings quoted and numbers bare; CRLF between rows, none at the end
    lines = [",".join(headers)]
    for b in batches:
        out = io.StringIO()
        w = csv.writer(out, quoting=csv.QUOTE_NONNUMERIC)
        w.writerow([_number(v) for v in _csv_row(b, headers)])
        lines.append(out.getvalue().rstrip("\r\n"))
    return "\r\n".join(lines)


def month_csv(batches: List[CalculatedBatch]) -> str:
    return to_csv(batches, MONTH_CSV_HEADERS)


def month_csv_filename(month_label: str) -> str:
    return f"report_{month_label.replace(' ', '_')}.csv"


def machine_csv(machine_number: int, batches: List[CalculatedBatch]) -> str:
    return to_csv([b for b in batches if b.machine_number == machine_number], MACHINE_CSV_HEADERS)


def machine_csv_filename(machine_number: int) -> str:
    return f"machine_{machine_number}_report.csv"


# ------------------------------------------------------------------
# JSON backup
# ------------------------------------------------------------------
def backup_document(settings: Settings, batches: List[Batch], now: dt.datetime = None) -> dict:
    backup = Backup(
        settings=settings,
        batches=batches,
        backup_date=now or dt.datetime.now(dt.timezone.utc),
    )
    return backup.model_dump(by_alias=True, mode="json")


def parse_backup(payload: dict) -> Backup:
    """Validate a backup document; raises pydantic's ValidationError if malformed."""
    return Backup.model_validate(payload)
