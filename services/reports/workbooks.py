import base64
from decimal import Decimal, ROUND_HALF_UP
from io import BytesIO

import maya
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

NOT_SET = "-"

PROFIT_FILL = PatternFill(start_color="90EE90", end_color="90EE90", fill_type="solid")
LOSS_FILL = PatternFill(start_color="FFB6C1", end_color="FFB6C1", fill_type="solid")

ITEM_STATUS_TEXT = {
    "available": "Mavjud",
    "sold": "Sotilgan",
    "reserved": "Rezerv",
    "transferred": "O'tkazilgan",
    "returned_to_supplier": "Ta'minotchiga qaytarilgan",
}

PAYMENT_STATUS_TEXT = {
    "paid": "To'langan",
    "unpaid": "To'lanmagan",
    "partially_paid": "Qisman to'langan",
}

CONFIRMATION_STATUS_TEXT = {
    "pending": "Kutilmoqda",
    "sent": "Yuborilgan",
    "confirmed": "Tasdiqlangan",
    "rejected": "Rad etilgan",
    "expired": "Muddati o'tgan",
}


def format_currency(value):
    """1234567.4 -> "1 234 567 so'm" """
    if value is None or isinstance(value, bool):
        return "0 so'm"
    try:
        amount = int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
    except (ArithmeticError, ValueError):
        return "0 so'm"
    return "{:,} so'm".format(amount).replace(",", " ")


def format_date(value, with_time=False):
    if not value:
        return NOT_SET
    fmt = '%d/%m/%Y %H:%M' if with_time else '%d/%m/%Y'
    return maya.parse(value).datetime().strftime(fmt)


def export_filename(prefix, now=None):
    """foyda-tahlili -> foyda-tahlili-2024-01-15-1430.xlsx"""
    now = maya.parse(now) if now else maya.now()
    return '{PREFIX}-{STAMP}.xlsx'.format(PREFIX=prefix, STAMP=now.datetime().strftime('%Y-%m-%d-%H%M'))


def to_base64(wb):
    stream = BytesIO()
    wb.save(stream)
    return base64.b64encode(stream.getvalue()).decode('utf-8')


def _percent(value):
    return '{:.2f}'.format(value or 0)


def _write_rows(ws, headers, rows, widths=None):
    ws.append(headers)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for row in rows:
        ws.append(row)

    for col in range(1, len(headers) + 1):
        width = widths[col - 1] if widths else 15
        ws.column_dimensions[get_column_letter(col)].width = width


def _write_summary(ws, title, figures, filters):
    ws.append([title, ""])
    ws["A1"].font = Font(bold=True)
    ws.append(["", ""])
    ws.append(["Umumiy ko'rsatkichlar", ""])
    for row in figures:
        ws.append(row)

    if filters is not None:
        ws.append(["", ""])
        ws.append(["Filtrlar", ""])
        for row in filters:
            ws.append(row)

    ws.append(["", ""])
    ws.append(["Eksport sanasi", format_date(maya.now().iso8601(), with_time=True)])

    ws.column_dimensions['A'].width = 25
    ws.column_dimensions['B'].width = 20


def build_profit_analysis_workbook(analysis, filters=None):
    """
    :param analysis: result of get_profit_analysis
    :param filters: the filters the analysis ran with
    """
    filters = filters or {}
    summary = analysis['summary']

    wb = Workbook()

    ws = wb.active
    ws.title = "Xulosa"
    _write_summary(ws, "Foyda tahlili xulosasi", [
        ["Jami mahsulotlar", summary['item_count']],
        ["Nazariy foyda", format_currency(summary['supposed_profit'])],
        ["Haqiqiy foyda", format_currency(summary['actual_profit'])],
        ["Jami daromad", format_currency(summary['total_revenue'])],
        ["Jami xarajat", format_currency(summary['total_cost'])],
        ["Foyda marjasi (%)", _percent(summary['profit_margin'])],
        ["O'rtacha foyda", format_currency(summary['average_profit'])],
        ["Narx farqi ta'siri", format_currency(summary['price_difference_impact'])],
    ], [
        ["Boshlanish sanasi", filters.get('start_date') or "Belgilanmagan"],
        ["Tugash sanasi", filters.get('end_date') or "Belgilanmagan"],
        ["Filial", filters.get('branch_id') or "Barchasi"],
        ["Kategoriya", filters.get('category') or "Barchasi"],
        ["To'lov holati", PAYMENT_STATUS_TEXT.get(filters.get('payment_status'), "Barchasi")],
    ])

    ws = wb.create_sheet("Mahsulotlar tahlili")
    rows = []
    for index, row in enumerate(analysis['items'], 1):
        item = row['item']
        rows.append([
            index,
            item.get('model'),
            item.get('category'),
            item.get('supplier_name') or NOT_SET,
            item.get('weight'),
            item.get('lom_narxi'),
            item.get('lom_narxi_kirim'),
            item.get('payed_lom_narxi') or NOT_SET,
            item.get('labor_cost'),
            item.get('selling_price'),
            row['supposed_profit'],
            row['actual_profit'],
            _percent(row['profit_margin']),
            row['actual_revenue'],
            row['actual_cost'],
            ITEM_STATUS_TEXT.get(item.get('status'), item.get('status')),
            PAYMENT_STATUS_TEXT.get(item.get('payment_status'), NOT_SET),
            format_date(item.get('purchase_date')),
            format_date(item.get('payment_date')),
            format_date(item.get('sold_date')),
            item.get('branch_name') or item.get('branch') or NOT_SET,
            item.get('notes') or NOT_SET,
        ])
    _write_rows(ws, [
        "№", "Model", "Kategoriya", "Ta'minotchi", "Og'irlik (g)", "Lom narxi (so'm/g)",
        "Lom narxi kirim (so'm/g)", "To'langan narx (so'm/g)", "Ishchi haqi (so'm/g)", "Sotuv narxi (so'm)",
        "Nazariy foyda (so'm)", "Haqiqiy foyda (so'm)", "Foyda marjasi (%)", "Daromad (so'm)",
        "Xarajat (so'm)", "Mahsulot holati", "To'lov holati", "Sotib olingan sana", "To'lov sanasi",
        "Sotilgan sana", "Filial", "Izohlar",
    ], rows)

    # actual profit column
    for (cell,) in ws.iter_rows(min_row=2, min_col=12, max_col=12):
        if isinstance(cell.value, (int, float)) and cell.value > 0:
            cell.fill = PROFIT_FILL
        elif isinstance(cell.value, (int, float)) and cell.value < 0:
            cell.fill = LOSS_FILL

    ws = wb.create_sheet("Kategoriya tahlili")
    _write_rows(ws, [
        "№", "Kategoriya", "Mahsulotlar soni", "Jami og'irlik (g)", "Nazariy foyda (so'm)",
        "Haqiqiy foyda (so'm)", "Jami daromad (so'm)", "Jami xarajat (so'm)", "Foyda marjasi (%)",
        "O'rtacha foyda (so'm)",
    ], [
        [index, category, group['count'], '{:.2f}'.format(group['total_weight']), group['supposed_profit'],
         group['actual_profit'], group['total_revenue'], group['total_cost'], _percent(group['profit_margin']),
         format_currency(group['average_profit'])]
        for index, (category, group) in enumerate(analysis['by_category'].items(), 1)
    ], widths=[5, 15, 12, 15, 18, 18, 15, 15, 15, 18])

    ws = wb.create_sheet("Filial tahlili")
    _write_rows(ws, [
        "№", "Filial", "Mahsulotlar soni", "Jami og'irlik (g)", "Nazariy foyda (so'm)", "Haqiqiy foyda (so'm)",
        "Jami daromad (so'm)", "Jami xarajat (so'm)", "Foyda marjasi (%)", "Samaradorlik (%)",
    ], [
        [index, branch, group['count'], '{:.2f}'.format(group['total_weight']), group['supposed_profit'],
         group['actual_profit'], group['total_revenue'], group['total_cost'], _percent(group['profit_margin']),
         _percent(group['efficiency'])]
        for index, (branch, group) in enumerate(analysis['by_branch'].items(), 1)
    ], widths=[5, 15, 12, 15, 18, 18, 15, 15, 15, 15])

    return wb


def build_supplier_workbook(summary):
    """
    :param summary: result of get_supplier_summary
    """
    totals = summary['totals']
    now = maya.now()

    wb = Workbook()

    ws = wb.active
    ws.title = "Xulosa"
    _write_summary(ws, "Ta'minotchi hisobi xulosasi", [
        ["Ta'minotchi", summary['supplier_name']],
        ["Jami mahsulotlar", totals['total_items']],
        ["To'langan mahsulotlar", totals['paid_items']],
        ["To'lanmagan mahsulotlar", totals['unpaid_items']],
        ["Qisman to'langan mahsulotlar", totals['partially_paid_items']],
        ["Tasdiqlangan mahsulotlar", totals['confirmed_items']],
        ["Tasdiqlanmagan mahsulotlar", totals['unconfirmed_items']],
        ["Jami og'irlik (g)", '{:.2f}'.format(totals['total_weight'])],
        ["Jami qiymat", format_currency(totals['total_value'])],
        ["To'langan qiymat", format_currency(totals['paid_value'])],
        ["To'lanmagan qiymat", format_currency(totals['unpaid_value'])],
        ["Narx farqi", format_currency(totals['price_difference'])],
    ], None)

    ws = wb.create_sheet("Barcha mahsulotlar")
    _write_rows(ws, [
        "№", "Model", "Kategoriya", "Og'irlik (g)", "Lom narxi (so'm/g)", "To'langan narx (so'm/g)",
        "Jami qiymat (so'm)", "To'langan qiymat (so'm)", "Narx farqi (so'm)", "To'lov holati",
        "Tasdiqlangan", "Sotib olingan sana", "To'lov sanasi",
    ], [
        [index, item.get('model'), item.get('category'), item.get('weight'), item.get('lom_narxi'),
         item.get('payed_lom_narxi') or NOT_SET,
         (item.get('weight') or 0) * (item.get('lom_narxi') or 0),
         (item.get('weight') or 0) * item['payed_lom_narxi'] if item.get('payed_lom_narxi') else NOT_SET,
         (item.get('price_difference') or 0) * (item.get('weight') or 0),
         PAYMENT_STATUS_TEXT.get(item.get('payment_status'), NOT_SET),
         "Ha" if item.get('confirmed') else "Yo'q",
         format_date(item.get('purchase_date')), format_date(item.get('payment_date'))]
        for index, item in enumerate(summary['items'], 1)
    ])

    ws = wb.create_sheet("To'lanmagan mahsulotlar")
    rows = []
    for index, item in enumerate(summary['unpaid_items'], 1):
        overdue_days = (now - maya.parse(item['purchase_date'])).days if item.get('purchase_date') else 0
        rows.append([
            index, item.get('model'), item.get('category'), item.get('weight'), item.get('lom_narxi'),
            (item.get('weight') or 0) * (item.get('lom_narxi') or 0),
            format_date(item.get('purchase_date')), overdue_days,
        ])
    _write_rows(ws, [
        "№", "Model", "Kategoriya", "Og'irlik (g)", "Lom narxi (so'm/g)", "Jami qiymat (so'm)",
        "Sotib olingan sana", "Kechikish (kun)",
    ], rows)

    ws = wb.create_sheet("To'langan mahsulotlar")
    rows = []
    for index, item in enumerate(summary['paid_items'], 1):
        lom_narxi = item.get('lom_narxi') or 0
        paid_price = item.get('payed_lom_narxi') or lom_narxi
        rows.append([
            index, item.get('model'), item.get('category'), item.get('weight'), lom_narxi, paid_price,
            paid_price - lom_narxi, (paid_price - lom_narxi) * (item.get('weight') or 0),
            format_date(item.get('payment_date')), item.get('payment_reference') or NOT_SET,
        ])
    _write_rows(ws, [
        "№", "Model", "Kategoriya", "Og'irlik (g)", "Lom narxi (so'm/g)", "To'langan narx (so'm/g)",
        "Narx farqi (so'm/g)", "Jami narx farqi (so'm)", "To'lov sanasi", "Ma'lumotnoma",
    ], rows)

    ws = wb.create_sheet("Tasdiqlash hujjatlari")
    _write_rows(ws, [
        "№", "Tasdiqlash kodi", "Holati", "Mahsulotlar soni", "Jami og'irlik (g)", "Jami summa",
        "Yuborilgan sana", "Amal qilish muddati", "Tasdiqlangan sana", "Izohlar",
    ], [
        [index, confirmation.get('confirmation_code'),
         CONFIRMATION_STATUS_TEXT.get(confirmation.get('status'), confirmation.get('status')),
         len(confirmation.get('item_ids') or []), confirmation.get('total_weight'),
         format_currency(confirmation.get('total_amount')),
         format_date(confirmation.get('sent_date')), format_date(confirmation.get('expiry_date')),
         format_date(confirmation.get('confirmed_date')), confirmation.get('admin_notes') or NOT_SET]
        for index, confirmation in enumerate(summary['confirmations'], 1)
    ], widths=[5, 22, 15, 15, 15, 18, 15, 18, 15, 25])

    return wb


def build_branches_workbook(branches):
    """
    :param branches: list of branch records carrying their stats
    """
    total_value = sum(branch.get('total_value') or 0 for branch in branches)
    total_revenue = sum(branch.get('monthly_revenue') or 0 for branch in branches)

    wb = Workbook()

    ws = wb.active
    ws.title = "Umumiy ma'lumot"
    _write_rows(ws, ["Ko'rsatkich", "Qiymat"], [
        ["Jami filiallar", len(branches)],
        ["Faol filiallar", len([branch for branch in branches if branch.get('status') == 'active'])],
        ["Jami mahsulotlar", sum(branch.get('item_count') or 0 for branch in branches)],
        ["Jami qiymat", format_currency(total_value)],
        ["Oylik daromad", format_currency(total_revenue)],
        ["Hisobot sanasi", format_date(maya.now().iso8601(), with_time=True)],
    ], widths=[25, 20])

    ws = wb.create_sheet("Filiallar ma'lumoti")
    _write_rows(ws, [
        "№", "Filial nomi", "Joylashuv", "Boshqaruvchi", "Turi", "Status", "Mahsulotlar soni",
        "Jami qiymat", "Oylik daromad",
    ], [
        [index, branch.get('name'), branch.get('location'), branch.get('manager') or NOT_SET,
         "Ta'minotchi" if branch.get('is_provider') else "Filial",
         "Faol" if branch.get('status') == 'active' else "Nofaol",
         branch.get('item_count') or 0, format_currency(branch.get('total_value')),
         format_currency(branch.get('monthly_revenue'))]
        for index, branch in enumerate(branches, 1)
    ], widths=[5, 25, 20, 20, 15, 10, 15, 18, 18])

    return wb
