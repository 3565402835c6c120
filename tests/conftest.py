import pandas as pd
import tempfile
import os
import shutil

from redemption_analytics.data_prep.record_store import ingest_records


def make_sales_rows():
    """Raw receipt upload with messy headers, mixed date formats and one bad date."""
    return [
        {'Receipt Date': '2024-01-07 10:15:00', 'Product': 'Acme Choco Bar', 'Retailer': 'Walmart',
         'Amount': '$4.50', 'Gender': 'M', 'Age': '25-34',
         'Question 1': 'Would you buy again?', 'Proposition 1': 'Yes;Maybe'},
        {'Receipt Date': '01/08/2024', 'Product': 'Acme Choco Bites', 'Retailer': 'Target',
         'Amount': '3.00', 'Gender': 'female', 'Age': '41',
         'Question 1': 'Would you buy again?', 'Proposition 1': 'Yes'},
        {'Receipt Date': '2024/01/08', 'Product': 'Globex Widget', 'Retailer': 'Walmart',
         'Amount': '2.25', 'Gender': None, 'Age': None,
         'Question 1': 'Would you buy again?', 'Proposition 1': 'Maybe'},
        {'Receipt Date': 'not a date', 'Product': 'Acme Choco Bar', 'Retailer': 'Walmart',
         'Amount': '4.50', 'Gender': 'F', 'Age': '70',
         'Question 1': 'Would you buy again?', 'Proposition 1': None},
    ]


def make_sales_records():
    return ingest_records(make_sales_rows())


def make_daily_records(days, per_day=1, start='2024-01-01', chain='Walmart', offer=None, kind='transactional'):
    """One or more records on each of ``days`` consecutive dates."""
    rows = []
    for i in range(days):
        day = (pd.Timestamp(start) + pd.Timedelta(days=i)).strftime('%Y-%m-%d')
        n = per_day[i] if isinstance(per_day, (list, tuple)) else per_day
        for _ in range(n):
            if kind == 'promotional':
                rows.append({'hit_id': f"h{len(rows)}", 'offer_name': offer, 'created_at': f"{day} 12:00:00"})
            else:
                rows.append({'receipt_date': day, 'product_name': 'Acme Choco Bar', 'chain': chain,
                             'receipt_total': 1.0, 'offer_name': offer})
    return ingest_records(rows, kind=kind)


def make_promo_rows():
    return [
        {'Offer': 'Spring Deal', 'Hit ID': 'a1', 'Timestamp': '2024-03-01T09:00:00Z', 'Rank': 2, 'Sex': 'male'},
        {'Offer': 'Spring Deal', 'Hit ID': 'a2', 'Timestamp': '2024-03-02T10:30:00Z', 'Rank': 1, 'Sex': 'female'},
        {'Offer': 'Summer Deal', 'Hit ID': 'a3', 'Timestamp': '2024-03-02T23:10:00Z', 'Rank': 10, 'Sex': None},
    ]


def make_temp_export_dir():
    tmp = tempfile.mkdtemp(prefix='exports_')
    return tmp


def cleanup_dir(d):
    if os.path.isdir(d):
        shutil.rmtree(d)
