"""
Analytics projection tests.

Every projection counts only APPROVED sales for money, is scoped to the
caller for journalists, and recomputes from current rows.
"""

import csv
import io
from datetime import date

import pytest

from salesdesk.errors import ForbiddenError, ValidationError
from salesdesk.extensions import db
from salesdesk.models import SaleStatus
from salesdesk.services import analytics_service, commission_service
from salesdesk.time_utils import today


@pytest.fixture
def seeded(admin, jane, tom, make_sale):
    make_sale(jane.user_id, amount="100.00", status=SaleStatus.APPROVED, ad_type="Radio")
    make_sale(jane.user_id, amount="300.00", status=SaleStatus.APPROVED, ad_type="Print", payment_method="Ecocash")
    make_sale(jane.user_id, amount="50.00", status=SaleStatus.PENDING)
    make_sale(tom.user_id, amount="200.00", status=SaleStatus.REJECTED)
    commission_service.create_payment(admin, {
        "journalist_id": jane.user_id,
        "amount": "15.00",
        "payment_date": today().isoformat(),
    })


class TestDashboard:

    def test_admin_totals(self, admin, seeded):
        stats = analytics_service.dashboard(admin)

        assert stats["sales"] == {"total": 4, "pending": 1, "approved": 2, "rejected": 1}
        assert stats["revenue"] == {"total": "400.00", "average": "200.00"}
        assert stats["commissions"] == {"earned": "40.00", "paid": "15.00", "unpaid": "25.00"}
        assert stats["clients"] == {"total": 1}

    def test_journalist_is_scoped(self, tom, seeded):
        stats = analytics_service.dashboard(tom)

        assert stats["sales"] == {"total": 1, "pending": 0, "approved": 0, "rejected": 1}
        assert stats["revenue"]["total"] == "0.00"
        assert stats["commissions"]["earned"] == "0.00"

    def test_empty_database(self, admin):
        stats = analytics_service.dashboard(admin)
        assert stats["sales"]["total"] == 0
        assert stats["revenue"] == {"total": "0.00", "average": "0.00"}


class TestBreakdowns:

    def test_revenue_trend_by_month(self, admin, seeded):
        rows = analytics_service.revenue_trend(admin, period="month", months=3)
        assert rows == [{
            "period": date.today().strftime("%Y-%m"),
            "sales_count": 2,
            "revenue": "400.00",
            "commission": "40.00",
        }]

    @pytest.mark.parametrize("period,months", [("year", 12), ("month", 0), ("month", "abc"), ("day", 500)])
    def test_revenue_trend_validation(self, admin, period, months):
        with pytest.raises(ValidationError):
            analytics_service.revenue_trend(admin, period=period, months=months)

    def test_revenue_trend_excludes_old_sales(self, admin, jane, make_sale):
        make_sale(jane.user_id, amount="80.00", status=SaleStatus.APPROVED, payment_date=date(2001, 1, 1))
        assert analytics_service.revenue_trend(admin, period="month", months=12) == []

    def test_sales_by_ad_type(self, admin, seeded):
        rows = analytics_service.sales_by_ad_type(admin)
        assert rows == [
            {"name": "Print", "count": 1, "value": "300.00"},
            {"name": "Radio", "count": 1, "value": "100.00"},
        ]

    def test_sales_by_payment_method(self, jane, seeded):
        rows = analytics_service.sales_by_payment_method(jane)
        assert {row["name"] for row in rows} == {"Ecocash", "Cash"}


class TestRankings:

    def test_leaderboard_includes_journalists_without_sales(self, admin, jane, tom, seeded):
        rows = analytics_service.leaderboard(admin)

        assert [row["id"] for row in rows] == [jane.user_id, tom.user_id]
        assert rows[0]["total_sales"] == 2
        assert rows[0]["total_revenue"] == "400.00"
        assert rows[0]["unique_clients"] == 1
        assert rows[1]["total_sales"] == 0
        assert rows[1]["total_revenue"] == "0.00"
        assert rows[1]["avg_sale_amount"] == "0.00"

    def test_leaderboard_limit_and_access(self, admin, jane, seeded):
        assert len(analytics_service.leaderboard(admin, limit=1)) == 1
        with pytest.raises(ForbiddenError):
            analytics_service.leaderboard(jane)
        with pytest.raises(ValidationError):
            analytics_service.leaderboard(admin, period="decade")

    def test_top_clients(self, admin, ad_client, seeded):
        rows = analytics_service.top_clients(admin)
        assert len(rows) == 1
        assert rows[0]["id"] == ad_client.id
        assert rows[0]["total_sales"] == 2
        assert rows[0]["total_revenue"] == "400.00"
        assert rows[0]["last_sale_date"] == date.today().isoformat()

    def test_recent_sales_scoped_and_limited(self, admin, tom, seeded):
        assert len(analytics_service.recent_sales(admin, limit=3)) == 3
        tom_rows = analytics_service.recent_sales(tom)
        assert [row["status"] for row in tom_rows] == ["rejected"]

    @pytest.mark.parametrize("raw", ["0", "101", "ten"])
    def test_parse_limit_rejects(self, raw):
        with pytest.raises(ValidationError):
            analytics_service.parse_limit(raw)

    def test_parse_limit_default(self):
        assert analytics_service.parse_limit(None) == 10
        assert analytics_service.parse_limit("25") == 25


class TestCsvExport:

    def _rows(self, text):
        return list(csv.reader(io.StringIO(text)))

    def test_header_and_rows(self, admin, seeded):
        rows = self._rows(analytics_service.export_sales_csv(admin))
        assert rows[0] == analytics_service.CSV_HEADER
        assert len(rows) == 5

    def test_fields_with_commas_and_quotes_survive(self, admin, jane, make_sale):
        sale = make_sale(jane.user_id)
        sale.description = 'Front page, "premium" slot'
        db.session.commit()

        rows = self._rows(analytics_service.export_sales_csv(admin))
        assert rows[1][-1] == 'Front page, "premium" slot'
        assert rows[1][3] == "Acme Motors"
        assert rows[1][6] == "100.00"

    def test_status_and_date_filters(self, admin, jane, make_sale):
        make_sale(jane.user_id, status=SaleStatus.APPROVED, payment_date=date(2026, 1, 15))
        make_sale(jane.user_id, status=SaleStatus.PENDING, payment_date=date(2026, 2, 15))

        approved = self._rows(analytics_service.export_sales_csv(admin, status="approved"))
        assert len(approved) == 2
        february = self._rows(analytics_service.export_sales_csv(admin, start_date="2026-02-01", end_date="2026-02-28"))
        assert [row[10] for row in february[1:]] == ["pending"]

    def test_journalist_cannot_export(self, jane):
        with pytest.raises(ForbiddenError):
            analytics_service.export_sales_csv(jane)

    def test_bad_filters(self, admin):
        with pytest.raises(ValidationError):
            analytics_service.export_sales_csv(admin, status="archived")
        with pytest.raises(ValidationError):
            analytics_service.export_sales_csv(admin, start_date="yesterday")
