# FILE: ehutano/services/pdfs/receipt_pdf.py
from __future__ import annotations

import io

from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from ehutano.core.config import Settings
from ehutano.schemas.dispensing import CompletedSale, PaymentMethod
from ehutano.services.pdfs.engine import _safe_str, get_styles, kv_table, simple_table
from ehutano.utils.money import fmt_money, round_money

# 80 mm till roll; height is generous, the printer cuts after the last line
RECEIPT_SIZE = (80 * mm, 200 * mm)


def build_receipt_pdf(sale: CompletedSale, settings: Settings) -> bytes:
    styles = get_styles()
    cur = sale.base_currency

    story = [
        Paragraph(f"<b>{_safe_str(settings.PHARMACY_NAME)}</b>", styles["Small"]),
    ]
    if settings.PHARMACY_ADDRESS:
        story.append(Paragraph(_safe_str(settings.PHARMACY_ADDRESS), styles["Muted"]))
    if settings.PHARMACY_PHONE:
        story.append(Paragraph(_safe_str(settings.PHARMACY_PHONE), styles["Muted"]))
    story.append(Spacer(1, 3 * mm))

    story.append(kv_table([
        ["POS Ref", sale.pos_reference],
        ["Rx", str(sale.prescription_id)],
        ["Date", sale.completed_at.strftime("%d-%m-%Y %H:%M")],
        ["Customer", sale.patient_name or "Walk-in"],
    ]))
    story.append(Spacer(1, 3 * mm))

    rows = [["Item", "Qty", "Amount"]]
    for item in sale.items:
        rows.append([
            f"{item.name} {item.dosage}".strip()[:28],
            str(item.quantity),
            f"{round_money(item.total):.2f}",
        ])
    rows.append(["Dispensing fee", "", f"{round_money(sale.dispensing_fee):.2f}"])
    story.append(simple_table(rows, col_widths=[40 * mm, 10 * mm, 18 * mm]))
    story.append(Spacer(1, 2 * mm))

    totals = [["Total", fmt_money(sale.grand_total, cur)]]
    method = sale.payment.method
    if method is not None:
        totals.append(["Paid by", method.value.replace("_", " ").title()])
    if method == PaymentMethod.CASH and sale.payment.amount is not None:
        totals.append(["Tendered", fmt_money(sale.payment.amount, sale.payment.currency)])
        if sale.payment.currency.upper() != cur.upper() and sale.amount_in_base is not None:
            totals.append(["Tendered (base)", fmt_money(sale.amount_in_base, cur)])
        totals.append(["Change", fmt_money(sale.change, cur)])
    elif sale.payment.reference:
        totals.append(["Reference", sale.payment.reference])
    if method == PaymentMethod.MEDICAL_AID:
        totals.append(["Claim", sale.payment.claim_status.value.replace("_", " ")])
    story.append(kv_table(totals))

    story.append(Spacer(1, 4 * mm))
    story.append(Paragraph("Thank you. Get well soon.", styles["Muted"]))

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=RECEIPT_SIZE,
        leftMargin=4 * mm,
        rightMargin=4 * mm,
        topMargin=5 * mm,
        bottomMargin=5 * mm,
        title=f"Receipt {sale.pos_reference}",
        author="",
    )
    doc.build(story)

    pdf_bytes = buf.getvalue()
    buf.close()
    return pdf_bytes
