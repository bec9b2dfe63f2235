import logging
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, Image

from invoicify.models import STATUS_PAID
from invoicify.totals import compute_totals, format_money, line_amount

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY = '#4F46E5'


def pdf_filename(invoice):
    return f"{invoice['invoice_number']}.pdf"


def _text(value):
    return escape(str(value or ''))


def _color(value, fallback=DEFAULT_PRIMARY):
    try:
        return colors.HexColor(value or fallback)
    except ValueError:
        logger.warning('Invalid brand color %r, using default', value)
        return colors.HexColor(fallback)


class InvoicePDF:
    def __init__(self, invoice, client, settings, logo_path=None):
        self.invoice = invoice
        self.client = client
        # Ensure all settings values are strings (handle None from DB)
        self.settings = {k: (v if v is not None else '') for k, v in (settings or {}).items()}
        self.logo_path = logo_path
        self.currency = self.settings.get('currency_symbol') or '$'
        self.primary = _color(self.settings.get('primary_color'))
        self.font_name = 'Helvetica'
        self.bold_font_name = 'Helvetica-Bold'

    def money(self, amount):
        return format_money(amount, self.currency)

    def _header(self, styles):
        normal_style, bold_style = styles['normal'], styles['bold']
        company = []
        if self.logo_path:
            company.append(Image(self.logo_path, width=1.6 * inch, height=0.55 * inch, kind='proportional'))
        else:
            company.append(Paragraph(_text(self.settings.get('company_name')), ParagraphStyle(
                'CompanyName', parent=bold_style, fontSize=18, leading=22, textColor=self.primary)))
        for line in (self.settings.get('company_address', '') or '').split('\n'):
            company.append(Paragraph(_text(line), styles['muted']))
        company.append(Paragraph(_text(self.settings.get('company_email')), styles['muted']))
        if self.settings.get('company_vat_number'):
            company.append(Paragraph(f"VAT: {_text(self.settings['company_vat_number'])}", styles['muted']))

        paid = self.invoice['status'] == STATUS_PAID
        badge = Table([[Paragraph(self.invoice['status'].upper(), styles['badge'])]])
        badge.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, -1), colors.HexColor('#10b981' if paid else '#f59e0b')),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('TOPPADDING', (0, 0), (-1, -1), 3),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
        ]))
        title = [
            Paragraph('INVOICE', styles['title']),
            Paragraph(f"#{self.invoice['invoice_number']}", ParagraphStyle(
                'InvNum', parent=normal_style, alignment=2, fontSize=12, textColor=colors.gray)),
            Spacer(1, 6),
            badge,
        ]

        header_table = Table([[company, title]], colWidths=[3.5 * inch, 2.5 * inch])
        header_table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('ALIGN', (1, 0), (1, 0), 'RIGHT'),
            ('LEFTPADDING', (0, 0), (-1, -1), 0),
            ('RIGHTPADDING', (0, 0), (-1, -1), 0),
            ('LINEBELOW', (0, 0), (-1, 0), 2, self.primary),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ]))
        return header_table

    def _bill_to(self, styles):
        normal_style, bold_style = styles['normal'], styles['bold']
        bill_to = [
            Paragraph('Bill To:', ParagraphStyle('BillToLabel', parent=normal_style, textColor=colors.gray)),
            Paragraph(_text(self.client.get('name')), bold_style),
        ]
        for line in (self.client.get('address') or '').split('\n'):
            bill_to.append(Paragraph(_text(line), normal_style))
        if self.client.get('email'):
            bill_to.append(Paragraph(_text(self.client['email']), normal_style))
        if self.client.get('vat_number'):
            bill_to.append(Paragraph(f"VAT: {_text(self.client['vat_number'])}", normal_style))

        def detail_label(text):
            return Paragraph(text, ParagraphStyle('DetailLabel', parent=normal_style, alignment=2,
                                                  textColor=colors.gray))

        def detail_value(text):
            return Paragraph(text, ParagraphStyle('DetailValue', parent=normal_style, alignment=2))

        details = Table([
            [detail_label('Issue Date:'), detail_value(self.invoice.get('issue_date') or '')],
            [detail_label('Due Date:'), detail_value(self.invoice.get('due_date') or '')],
        ], colWidths=[2 * inch, 1.2 * inch])
        details.setStyle(TableStyle([('VALIGN', (0, 0), (-1, -1), 'MIDDLE')]))

        mid_table = Table([[bill_to, details]], colWidths=[3.0 * inch, 3.2 * inch])
        mid_table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('LEFTPADDING', (0, 0), (-1, -1), 0),
        ]))
        return mid_table

    def _line_items(self, styles):
        normal_style, header_style = styles['normal'], styles['header']
        items_data = [[
            Paragraph('Description', header_style),
            Paragraph('Quantity', header_style),
            Paragraph('Rate', header_style),
            Paragraph('Amount', header_style),
        ]]
        for item in self.invoice['line_items']:
            items_data.append([
                Paragraph(_text(item.get('description')), normal_style),
                Paragraph(f"{item['quantity']:g}", normal_style),
                Paragraph(self.money(item['rate']), normal_style),
                Paragraph(self.money(line_amount(item)), normal_style),
            ])

        items_table = Table(items_data, colWidths=[3 * inch, 1 * inch, 1 * inch, 1 * inch], repeatRows=1)
        items_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), self.primary),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('PADDING', (0, 0), (-1, -1), 8),
            ('LINEBELOW', (0, 1), (-1, -1), 0.5, colors.HexColor('#e5e7eb')),
        ]))
        return items_table

    def _totals(self, styles):
        normal_style, bold_style = styles['normal'], styles['bold']
        totals = compute_totals(self.invoice['line_items'], self.invoice['tax_rate'])
        totals_table = Table([
            [Paragraph('Subtotal:', bold_style), Paragraph(self.money(totals.subtotal), normal_style)],
            [Paragraph(f"Tax ({self.invoice['tax_rate']:g}%):", bold_style),
             Paragraph(self.money(totals.tax_amount), normal_style)],
            [Paragraph('Total:', styles['header']), Paragraph(self.money(totals.total), styles['header'])],
        ], colWidths=[1.5 * inch, 1.5 * inch])
        totals_table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('BACKGROUND', (0, 2), (-1, 2), self.primary),
        ]))
        # Container table pushes the totals to the right
        return Table([[None, totals_table]], colWidths=[3 * inch, 3 * inch])

    def _footer(self, canvas, doc):
        canvas.saveState()
        canvas.setFont(self.font_name, 8)
        canvas.setFillColor(colors.HexColor('#9ca3af'))
        canvas.drawCentredString(A4[0] / 2, 30, f"Thank you for your business. {self.settings.get('company_name', '')}")
        canvas.restoreState()

    def generate(self, target):
        """Write the PDF to ``target``, a path or a binary file object."""
        doc = SimpleDocTemplate(target, pagesize=A4, rightMargin=40, leftMargin=40, topMargin=40, bottomMargin=50,
                                title=f"Invoice {self.invoice['invoice_number']}")
        base = getSampleStyleSheet()
        normal_style = ParagraphStyle('Normal_Custom', parent=base['Normal'], fontName=self.font_name,
                                      fontSize=10, leading=14)
        styles = {
            'normal': normal_style,
            'bold': ParagraphStyle('Bold_Custom', parent=normal_style, fontName=self.bold_font_name),
            'muted': ParagraphStyle('Muted', parent=normal_style, fontSize=9, leading=12,
                                    textColor=colors.HexColor('#6b7280')),
            'header': ParagraphStyle('Header_Custom', parent=normal_style, fontName=self.bold_font_name,
                                     textColor=colors.white),
            'badge': ParagraphStyle('Badge', parent=normal_style, fontName=self.bold_font_name, fontSize=9,
                                    textColor=colors.white, alignment=1),
            'title': ParagraphStyle('Title_Custom', parent=base['Heading1'], fontName=self.bold_font_name,
                                    fontSize=28, leading=32, alignment=2),
        }

        story = [
            self._header(styles),
            Spacer(1, 0.4 * inch),
            self._bill_to(styles),
            Spacer(1, 0.4 * inch),
            self._line_items(styles),
            Spacer(1, 0.2 * inch),
            self._totals(styles),
        ]
        if self.invoice.get('notes'):
            story.append(Spacer(1, 0.3 * inch))
            story.append(Paragraph('Notes:', styles['bold']))
            story.append(Paragraph(_text(self.invoice['notes']).replace('\n', '<br/>'), normal_style))

        doc.build(story, onFirstPage=self._footer, onLaterPages=self._footer)
        logger.info('Rendered PDF for invoice %s', self.invoice['invoice_number'])
