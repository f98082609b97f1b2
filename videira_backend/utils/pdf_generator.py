"""
PDF Generation Utilities for the church console
Generates the financial, members and tithes reports
"""
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.enums import TA_LEFT
from datetime import date
import io

from utils.formatting import format_currency, format_date, normalize_text
from utils.report_filters import category_breakdown, summarize

DEFAULT_CHURCH_NAME = 'Igreja Videira'


class _NumberedCanvas(canvas.Canvas):
    """Canvas that defers page output so the footer can print the page count"""

    footer_text = ''

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self.setFont('Helvetica', 8)
            self.setFillColor(colors.HexColor('#666666'))
            self.drawString(
                0.8 * inch, 0.5 * inch,
                f"Página {self._pageNumber} de {page_count} - {self.footer_text}"
            )
            super().showPage()
        super().save()


class PDFGenerator:
    """Generate PDF reports for the church's records"""

    def __init__(self, church_name=None):
        self.church_name = church_name or DEFAULT_CHURCH_NAME
        self.styles = getSampleStyleSheet()
        self.setup_custom_styles()

    def setup_custom_styles(self):
        """Setup custom paragraph styles"""
        self.styles.add(ParagraphStyle(
            name='ChurchName',
            parent=self.styles['Heading1'],
            fontSize=20,
            textColor=colors.HexColor('#2980b9'),
            spaceAfter=4,
            alignment=TA_LEFT
        ))

        self.styles.add(ParagraphStyle(
            name='CustomTitle',
            parent=self.styles['Heading1'],
            fontSize=16,
            textColor=colors.HexColor('#333333'),
            spaceBefore=12,
            spaceAfter=6
        ))

        self.styles.add(ParagraphStyle(
            name='SectionHeader',
            parent=self.styles['Heading2'],
            fontSize=13,
            textColor=colors.HexColor('#333333'),
            spaceAfter=10,
            spaceBefore=12
        ))

        self.styles.add(ParagraphStyle(
            name='InfoText',
            parent=self.styles['Normal'],
            fontSize=10,
            textColor=colors.HexColor('#666666')
        ))

    def _header(self, title, subtitle=None, period=None):
        story = [
            Paragraph(self.church_name, self.styles['ChurchName']),
            Paragraph("Sistema Financeiro", self.styles['InfoText']),
            Paragraph(title, self.styles['CustomTitle']),
        ]
        info = []
        if subtitle:
            info.append(subtitle)
        if period:
            info.append(f"<b>Período:</b> {period}")
        info.append(f"<b>Gerado em:</b> {format_date(date.today())}")
        story.append(Paragraph('<br/>'.join(info), self.styles['InfoText']))
        story.append(Spacer(1, 16))
        return story

    def _table(self, rows, header_color, col_widths, font_size=10, total_row=False):
        table = Table(rows, colWidths=col_widths, repeatRows=1)
        style = [
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(header_color)),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('ALIGN', (-1, 0), (-1, -1), 'RIGHT'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), font_size),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey)
        ]
        if total_row:
            style.extend([
                ('BACKGROUND', (0, -1), (-1, -1), colors.HexColor('#e8f0fe')),
                ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ])
        table.setStyle(TableStyle(style))
        return table

    def _build(self, story):
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4, rightMargin=56, leftMargin=56,
                                topMargin=56, bottomMargin=56)
        footer = f"{self.church_name} - Sistema Financeiro"
        numbered_canvas = type('ReportCanvas', (_NumberedCanvas,), {'footer_text': footer})
        doc.build(story, canvasmaker=numbered_canvas)
        return buffer.getvalue()

    def _summary_rows(self, income, expenses, suffix=''):
        summary = summarize(income, expenses)
        return [
            ['Descrição', 'Valor'],
            [f'Total de Receitas{suffix}', format_currency(summary['totalReceitas'])],
            [f'Total de Despesas{suffix}', format_currency(summary['totalDespesas'])],
            [f'Saldo Líquido{suffix}', format_currency(summary['saldoLiquido'])],
        ]

    def generate_financial_report(self, all_income, all_expenses, filtered_income, filtered_expenses,
                                  title='RELATÓRIO FINANCEIRO', subtitle=None, period=None):
        """
        Overall summary (unfiltered), summary of the selected period/type,
        then income and expenses by category from the filtered records.

        Returns:
            bytes: the PDF document
        """
        story = self._header(title, subtitle, period)

        story.append(Paragraph("RESUMO FINANCEIRO GERAL", self.styles['SectionHeader']))
        story.append(self._table(self._summary_rows(all_income, all_expenses, ' (Geral)'),
                                 '#3cb371', [4 * inch, 2 * inch], total_row=True))
        story.append(Spacer(1, 16))

        story.append(Paragraph("RESUMO FINANCEIRO DO PERÍODO/TIPO", self.styles['SectionHeader']))
        story.append(self._table(self._summary_rows(filtered_income, filtered_expenses),
                                 '#2980b9', [4 * inch, 2 * inch], total_row=True))
        story.append(Spacer(1, 16))

        filtered = summarize(filtered_income, filtered_expenses)
        for heading, totals, color in (
            ("RECEITAS POR CATEGORIA", filtered['receitasPorCategoria'], '#27ae60'),
            ("DESPESAS POR CATEGORIA", filtered['despesasPorCategoria'], '#c0392b'),
        ):
            if not totals:
                continue
            rows = [['Categoria', 'Valor', '%']]
            for row in category_breakdown(totals):
                rows.append([
                    row['categoria'] or 'Sem categoria',
                    format_currency(row['valor']),
                    f"{row['percentual'] * 100:.1f}%"
                ])
            story.append(Paragraph(heading, self.styles['SectionHeader']))
            story.append(self._table(rows, color, [3.5 * inch, 1.75 * inch, 0.75 * inch]))
            story.append(Spacer(1, 16))

        return self._build(story)

    def generate_members_report(self, members):
        """Members list: name, email, phone, status and registration date"""
        story = self._header("RELATÓRIO DE MEMBROS", "Lista completa de membros cadastrados")

        rows = [['Nome', 'Email', 'Telefone', 'Status', 'Data Cadastro']]
        for member in members:
            rows.append([
                member.get('nome', ''),
                member.get('email') or 'N/A',
                member.get('telefone') or 'N/A',
                member.get('status', ''),
                format_date(member.get('dataCadastro'))
            ])

        story.append(self._table(rows, '#9b59b6',
                                 [1.7 * inch, 1.9 * inch, 1.2 * inch, 0.8 * inch, 1.0 * inch],
                                 font_size=9))
        story.append(Spacer(1, 12))
        story.append(Paragraph(f"<b>Total de membros:</b> {len(members)}", self.styles['InfoText']))
        return self._build(story)

    def generate_tithes_report(self, income):
        """Tithe history with total, count and average"""
        tithes = [r for r in income if normalize_text(r.get('categoria') or '') == 'dizimo']
        story = self._header("RELATÓRIO DE DÍZIMOS", "Histórico completo de dízimos")

        rows = [['Descrição', 'Data', 'Valor']]
        for tithe in tithes:
            rows.append([
                tithe.get('descricao', ''),
                format_date(tithe.get('data')),
                format_currency(tithe.get('valor', 0))
            ])
        story.append(self._table(rows, '#3498db', [3.5 * inch, 1.25 * inch, 1.25 * inch]))

        total = sum(float(t.get('valor') or 0) for t in tithes)
        average = total / len(tithes) if tithes else 0

        story.append(Paragraph("RESUMO DOS DÍZIMOS", self.styles['SectionHeader']))
        summary_text = f"""
        <b>Total:</b> {format_currency(total)}<br/>
        <b>Quantidade:</b> {len(tithes)} dízimos<br/>
        <b>Média:</b> {format_currency(average)}
        """
        story.append(Paragraph(summary_text, self.styles['Normal']))
        return self._build(story)
