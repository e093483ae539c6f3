## acta.py: acta de entrega de material (PDF con reportlab)

from io import BytesIO
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from .models import TYPE_LABELS

MONTHS = ("enero", "febrero", "marzo", "abril", "mayo", "junio", "julio",
          "agosto", "septiembre", "octubre", "noviembre", "diciembre")


def long_date(d):
    return f"{d.day} de {MONTHS[d.month - 1]} de {d.year}"


def handover_pdf(assignment, org_name="IT Manager"):
    asset = assignment.asset
    profile = assignment.profile
    name = profile.full_name if profile else (assignment.employee_name or "")
    email = profile.email if profile else (assignment.employee_email or "")
    department = (profile.department if profile else None) or "No especificado"

    bio = BytesIO(); c = canvas.Canvas(bio, pagesize=A4)
    w, h = A4; margin = 56

    # cabecera
    c.setFillColorRGB(30 / 255, 58 / 255, 95 / 255)
    c.rect(0, h - 113, w, 113, stroke=0, fill=1)
    c.setFillColorRGB(1, 1, 1)
    c.setFont("Helvetica-Bold", 22); c.drawString(margin, h - 60, org_name.upper())
    c.setFont("Helvetica", 12); c.drawString(margin, h - 85, "Acta de Entrega de Material Informático")
    c.setFillColorRGB(0, 0, 0)

    y = h - 150
    c.setFont("Helvetica", 10); c.drawString(margin, y, f"Fecha: {long_date(assignment.assigned_date)}"); y -= 36

    c.setFont("Helvetica-Bold", 13); c.drawString(margin, y, "DATOS DEL EMPLEADO"); y -= 22
    c.setFont("Helvetica", 11)
    for line in (f"Nombre: {name}", f"Email: {email}", f"Departamento: {department}"):
        c.drawString(margin, y, line); y -= 18
    if assignment.client_name:
        c.drawString(margin, y, f"Cliente / ubicación: {assignment.client_name}"); y -= 18
    y -= 18

    c.setFont("Helvetica-Bold", 13); c.drawString(margin, y, "DATOS DEL EQUIPO"); y -= 22
    c.setFont("Helvetica", 11)
    lines = [f"Tipo: {TYPE_LABELS.get(asset.device_type, asset.device_type)}",
             f"Marca: {asset.brand}", f"Modelo: {asset.model}", f"Número de Serie: {asset.serial_number}"]
    if asset.imei:
        lines.append(f"IMEI: {asset.imei}")
    for line in lines:
        c.drawString(margin, y, line); y -= 18

    if assignment.accessories:
        y -= 18
        c.setFont("Helvetica-Bold", 13); c.drawString(margin, y, "ACCESORIOS INCLUIDOS"); y -= 22
        c.setFont("Helvetica", 11)
        for acc in assignment.accessories:
            if y < 200:
                c.showPage(); y = h - margin; c.setFont("Helvetica", 11)
            c.drawString(margin + 14, y, f"• {acc}"); y -= 18

    if assignment.notes:
        y -= 10
        c.setFont("Helvetica-Oblique", 10); c.drawString(margin, y, f"Observaciones: {assignment.notes[:110]}"); y -= 18

    # firmas
    sign_y = min(y - 30, 230)
    c.setFont("Helvetica-Bold", 13); c.drawString(margin, sign_y, "FIRMAS")
    c.setFont("Helvetica", 10)
    c.drawString(margin, sign_y - 25, "Entregado por (IT):")
    c.line(margin, sign_y - 80, margin + 200, sign_y - 80)
    c.drawString(w / 2 + 10, sign_y - 25, "Recibido por (Empleado):")
    c.line(w / 2 + 10, sign_y - 80, w / 2 + 210, sign_y - 80)

    c.setFont("Helvetica", 8); c.setFillColorRGB(0.5, 0.5, 0.5)
    c.drawString(margin, 40, f"Documento generado automáticamente por {org_name}")
    c.showPage(); c.save(); bio.seek(0); return bio


def acta_filename(assignment, stamp):
    return f"entrega_{assignment.asset.serial_number}_{stamp}.pdf"
