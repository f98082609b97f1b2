from flask import Blueprint, request, jsonify, Response
from datetime import date

from utils.errors import ValidationError
from utils.formatting import parse_date
from utils.pdf_generator import PDFGenerator
from utils.report_filters import (
    REPORT_TYPE_LABELS, apply_filters, category_breakdown, period_label, summarize
)

PDF_REPORTS = ('financeiro', 'membros', 'dizimos')


def _report_params():
    report_type = request.args.get('tipo', 'geral')
    period = request.args.get('periodo', 'todos')
    start = parse_date(request.args.get('inicio'))
    end = parse_date(request.args.get('fim'))
    if start and end and start > end:
        raise ValidationError({'fim': ['End date must be on or after start date']})
    return report_type, period, start, end


def init_reports_blueprint(token_required, church_name=None):
    """Initialize the reports (relatorios) blueprint"""
    reports_bp = Blueprint('reports', __name__, url_prefix='/relatorios')

    @reports_bp.route('', methods=['GET'])
    @token_required
    def get_report(console):
        report_type, period, start, end = _report_params()
        income, expenses = apply_filters(
            console.income.records, console.expenses.records,
            report_type, period, start, end
        )
        summary = summarize(income, expenses)
        summary['receitasPorCategoriaDetalhe'] = category_breakdown(summary['receitasPorCategoria'])
        summary['despesasPorCategoriaDetalhe'] = category_breakdown(summary['despesasPorCategoria'])
        return jsonify({
            'success': True,
            'data': {
                'tipo': report_type,
                'tipoLabel': REPORT_TYPE_LABELS[report_type],
                'periodo': period,
                'periodoLabel': period_label(period, start, end),
                'resumo': summary
            },
            'message': 'Report generated successfully'
        })

    @reports_bp.route('/pdf', methods=['GET'])
    @token_required
    def get_report_pdf(console):
        report = request.args.get('relatorio', 'financeiro')
        if report not in PDF_REPORTS:
            raise ValidationError({'relatorio': [f"Report must be one of: {', '.join(PDF_REPORTS)}"]})

        generator = PDFGenerator(console.church_profile.config.get('nome') or church_name)
        if report == 'membros':
            pdf_bytes = generator.generate_members_report(console.members.records)
        elif report == 'dizimos':
            pdf_bytes = generator.generate_tithes_report(console.income.records)
        else:
            report_type, period, start, end = _report_params()
            all_income = console.income.records
            all_expenses = console.expenses.records
            income, expenses = apply_filters(all_income, all_expenses, report_type, period, start, end)
            pdf_bytes = generator.generate_financial_report(
                all_income, all_expenses, income, expenses,
                subtitle=REPORT_TYPE_LABELS[report_type],
                period=period_label(period, start, end)
            )

        filename = f"relatorio-{report}-{date.today().isoformat()}.pdf"
        return Response(
            pdf_bytes,
            mimetype='application/pdf',
            headers={'Content-Disposition': f'attachment; filename={filename}'}
        )

    return reports_bp
