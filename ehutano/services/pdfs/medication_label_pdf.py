# FILE: ehutano/services/pdfs/medication_label_pdf.py
from __future__ import annotations

from io import BytesIO
from typing import Iterable

from reportlab.lib import colors
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from ehutano.schemas.dispensing import MedicationLabel
from ehutano.services.pdfs.engine import _safe_str, barcode_image

# 100 x 60 mm thermal label stock
LABEL_SIZE = (100 * mm, 60 * mm)


def _fmt_date(d) -> str:
    return d.strftime("%d-%m-%Y") if d else "-"


def _wrap(c: canvas.Canvas, text: str, font: str, size: float, width: float) -> list:
    words = _safe_str(text).split()
    lines, cur = [], ""
    for w in words:
        trial = f"{cur} {w}".strip()
        if c.stringWidth(trial, font, size) <= width:
            cur = trial
        else:
            if cur:
                lines.append(cur)
            cur = w
    if cur:
        lines.append(cur)
    return lines


def _draw_label(c: canvas.Canvas, label: MedicationLabel) -> None:
    w, h = LABEL_SIZE
    x = 4 * mm
    right = w - 4 * mm
    y = h - 6 * mm

    # Pharmacy header
    c.setFont("Helvetica-Bold", 9)
    c.drawString(x, y, _safe_str(label.pharmacy_name)[:48])
    contact = " | ".join(v for v in [label.pharmacy_address, label.pharmacy_phone] if v)
    if contact:
        y -= 3.5 * mm
        c.setFont("Helvetica", 6.5)
        c.drawString(x, y, _safe_str(contact)[:80])

    y -= 2 * mm
    c.setStrokeColor(colors.grey)
    c.setLineWidth(0.4)
    c.line(x, y, right, y)

    # Patient / prescriber
    y -= 4 * mm
    c.setFont("Helvetica", 7.5)
    c.drawString(x, y, f"Patient: {_safe_str(label.patient_name)[:40]}")
    c.drawRightString(right, y, f"Date: {_fmt_date(label.dispensed_on)}")
    if label.doctor_name:
        y -= 3.5 * mm
        c.drawString(x, y, f"Prescriber: Dr. {_safe_str(label.doctor_name)[:38]}")

    # Medicine
    y -= 5 * mm
    c.setFont("Helvetica-Bold", 9)
    title = f"{label.medicine_name} {label.dosage}".strip()
    c.drawString(x, y, _safe_str(title)[:44])
    c.drawRightString(right, y, f"Qty: {label.quantity}")

    # Directions
    y -= 4.5 * mm
    c.setFont("Helvetica", 8)
    directions = label.interpreted_instructions or label.instructions or "Use as directed"
    for line in _wrap(c, directions, "Helvetica", 8, right - x)[:3]:
        c.drawString(x, y, line)
        y -= 3.5 * mm

    # Batch / expiry / pharmacist
    y -= 0.5 * mm
    c.setFont("Helvetica", 7)
    c.drawString(x, y, f"Batch: {_safe_str(label.batch_number) or '-'}   Exp: {_fmt_date(label.expiry_date)}")
    if label.pharmacist_name:
        c.drawRightString(right, y, f"Pharmacist: {_safe_str(label.pharmacist_name)[:24]}")

    # Barcode (bottom right), regulatory footer (bottom left)
    img = barcode_image(label.barcode_value)
    if img:
        c.drawImage(img, right - 34 * mm, 5 * mm, width=34 * mm, height=7 * mm, mask="auto")

    if label.footer:
        c.setFont("Helvetica-Oblique", 5.5)
        c.setFillColor(colors.grey)
        fy = 10 * mm
        for line in _wrap(c, label.footer, "Helvetica-Oblique", 5.5, right - x - 36 * mm)[:3]:
            c.drawString(x, fy, line)
            fy -= 2.5 * mm
        c.setFillColor(colors.black)


def build_labels_pdf(labels: Iterable[MedicationLabel]) -> bytes:
    """One label per page, ready for the label printer."""
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=LABEL_SIZE)
    c.setTitle("Medication labels")
    drew = False
    for label in labels:
        _draw_label(c, label)
        c.showPage()
        drew = True
    if not drew:
        c.showPage()
    c.save()
    pdf_bytes = buf.getvalue()
    buf.close()
    return pdf_bytes
