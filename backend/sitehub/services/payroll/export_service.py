import calendar
import csv
import logging
import time
import unicodedata
from io import BytesIO, StringIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from ...errors import AppError
from ...observability import sitehub_metrics

logger = logging.getLogger(__name__)

OUTPUT_TYPES = ('xlsx', 'csv')
XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
CSV_MIMETYPE = 'text/csv'

EMPLOYMENT_LABELS = {
    'regular_employee': '정규직',
    'freelancer': '프리랜서',
    'daily_worker': '일용직',
}

STATEMENT_COLUMNS = [
    ('worker_name', '성명'),
    ('employment_type', '고용형태'),
    ('daily_rate', '일급'),
    ('work_days', '출역일수'),
    ('total_labor_hours', '총공수'),
    ('total_gross_pay', '지급총액'),
    ('tax_deduction', '소득세·주민세'),
    ('national_pension', '국민연금'),
    ('health_insurance', '건강보험'),
    ('employment_insurance', '고용보험'),
    ('total_deductions', '공제총액'),
    ('net_pay', '실지급액'),
]
MONEY_KEYS = {
    'daily_rate', 'total_gross_pay', 'tax_deduction', 'national_pension',
    'health_insurance', 'employment_insurance', 'total_deductions', 'net_pay',
}

HEADER_FONT = Font(bold=True, color='FFFFFF')
HEADER_FILL = PatternFill('solid', fgColor='1F4E78')
TOTAL_FONT = Font(bold=True)
THIN = Side(style='thin', color='BFBFBF')
CELL_BORDER = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)


class SalaryExportService:
    """Monthly salary statement as an Excel workbook or CSV."""

    def __init__(self, statement_builder):
        self.statement_builder = statement_builder

    @staticmethod
    def safe_label(value: str) -> str:
        if not value:
            return ''
        normalized = unicodedata.normalize('NFKC', value)
        cleaned = []
        for ch in normalized:
            cat = unicodedata.category(ch)
            cleaned.append(ch if cat[0] in {'L', 'N'} else '_')
        label = ''.join(cleaned).strip('_')
        return '_'.join(filter(None, label.split('_')))

    @staticmethod
    def statement_rows(statements):
        rows = []
        for worker, statement in statements:
            row = dict(statement, worker_name=worker.full_name or '')
            row['employment_type'] = EMPLOYMENT_LABELS.get(statement['employment_type'], statement['employment_type'])
            rows.append(row)
        return rows

    def export(self, auth, year, month, output_type='xlsx', site_id=None, site_name=None):
        """
        Build the monthly statement file.

        Returns:
            (BytesIO, filename, mimetype)
        """
        if output_type not in OUTPUT_TYPES:
            raise AppError.validation('지원하지 않는 파일 형식입니다.')
        started = time.perf_counter()
        start, _ = self.statement_builder.bounds(year, month)
        rows = self.statement_rows(self.statement_builder.build(auth, start.year, start.month, site_id=site_id))

        label = self.safe_label(site_name) or 'all_sites'
        filename = f"salary_statement_{label}_{start.strftime('%Y-%m')}.{output_type}"
        if output_type == 'csv':
            output = self.export_csv(rows)
        else:
            output = self.export_xlsx(rows, start.year, start.month, site_name)
        sitehub_metrics.observe_export_latency(time.perf_counter() - started, output_type)
        logger.info('Exported %d statement rows to %s', len(rows), filename)
        return output, filename, XLSX_MIMETYPE if output_type == 'xlsx' else CSV_MIMETYPE

    def export_csv(self, rows):
        csv_buffer = StringIO()
        writer = csv.writer(csv_buffer)
        writer.writerow([title for _, title in STATEMENT_COLUMNS])
        for row in rows:
            writer.writerow([row.get(key, '') for key, _ in STATEMENT_COLUMNS])

        output = BytesIO(csv_buffer.getvalue().encode('utf-8-sig'))
        output.seek(0)
        return output

    def export_xlsx(self, rows, year: int, month: int, site_name: str = None):
        wb = Workbook()
        ws = wb.active
        ws.title = f'{year}-{month:02d}'
        last_col = len(STATEMENT_COLUMNS)
        days_in_month = calendar.monthrange(year, month)[1]

        ws.cell(row=1, column=1, value=f'{year}년 {month}월 급여명세 ({site_name or "전체 현장"})').font = Font(bold=True, size=14)
        ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=last_col)
        ws.cell(row=2, column=1, value=f'기간: {year}-{month:02d}-01 ~ {year}-{month:02d}-{days_in_month:02d}')
        ws.merge_cells(start_row=2, start_column=1, end_row=2, end_column=last_col)

        header_row = 4
        for col, (_, title) in enumerate(STATEMENT_COLUMNS, start=1):
            cell = ws.cell(row=header_row, column=col, value=title)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.alignment = Alignment(horizontal='center', vertical='center')
            cell.border = CELL_BORDER
            ws.column_dimensions[get_column_letter(col)].width = 16 if col > 1 else 14

        for idx, row in enumerate(rows, start=header_row + 1):
            for col, (key, _) in enumerate(STATEMENT_COLUMNS, start=1):
                cell = ws.cell(row=idx, column=col, value=row.get(key))
                cell.border = CELL_BORDER
                if key in MONEY_KEYS:
                    cell.number_format = '#,##0'
                elif key == 'total_labor_hours':
                    cell.number_format = '0.00'

        total_row = header_row + len(rows) + 1
        ws.cell(row=total_row, column=1, value='합계').font = TOTAL_FONT
        if rows:
            for col, (key, _) in enumerate(STATEMENT_COLUMNS, start=1):
                if key in MONEY_KEYS - {'daily_rate'} or key in ('work_days', 'total_labor_hours'):
                    col_letter = get_column_letter(col)
                    cell = ws.cell(row=total_row, column=col, value=f'=SUM({col_letter}{header_row + 1}:{col_letter}{total_row - 1})')
                    cell.font = TOTAL_FONT
                    cell.number_format = '#,##0' if key in MONEY_KEYS else '0.00'
        ws.freeze_panes = ws.cell(row=header_row + 1, column=2)

        output = BytesIO()
        wb.save(output)
        output.seek(0)
        return output
