"""
Tests for export result types and table schemas.
"""

from datetime import date, datetime, timezone

from data_products.models import CategoryResult, CategoryStatus, ExportManifest
from data_products.schemas import TABLE_SCHEMAS, get_schema
from record_store.models import ExportWindow, HealthCategory


class TestCategoryResult:
    """Tests for CategoryResult."""

    def test_succeeded(self):
        result = CategoryResult.succeeded(3, dropped=1)
        assert result.status == CategoryStatus.SUCCEEDED
        assert result.to_dict() == {"status": "succeeded", "count": 3, "dropped": 1}

    def test_failed(self):
        result = CategoryResult.failed("quota exceeded", count=4)
        assert not result.is_success
        assert result.to_dict()["reason"] == "quota exceeded"


class TestExportManifest:
    """Tests for ExportManifest."""

    def test_summary(self):
        manifest = ExportManifest(
            window=ExportWindow.for_day(date(2024, 1, 1)),
            file_name="daily-export-2024-01-01.json",
            archive_path="daily-exports/daily-export-2024-01-01.json",
            exported_at=datetime(2024, 1, 2, 2, tzinfo=timezone.utc),
            categories={
                "food_entries": CategoryResult.succeeded(3),
                "water_entries": CategoryResult.failed("timeout", count=2),
            },
        )

        assert not manifest.succeeded
        assert manifest.total_records == 5
        assert manifest.failed_categories == {"water_entries": "timeout"}
        assert manifest.to_dict()["export_date"] == "2024-01-01"


class TestTableSchemas:
    """Tests for the fixed warehouse schemas."""

    def test_every_category_has_a_schema(self):
        assert set(TABLE_SCHEMAS) == set(HealthCategory)

    def test_common_columns(self):
        for schema in TABLE_SCHEMAS.values():
            assert schema.fields[0].to_dict() == {"name": "anonymousUserId", "type": "STRING", "mode": "REQUIRED"}
            assert schema.field_names[-2:] == ("timestamp", "exportedAt")

    def test_food_columns(self):
        assert get_schema(HealthCategory.FOOD).field_names == (
            "anonymousUserId", "name", "calories", "protein", "carbs", "fat",
            "fiber", "meal", "quantity", "timestamp", "exportedAt",
        )

    def test_mood_factors_repeated(self):
        assert get_schema(HealthCategory.MOOD).repeated_fields == ("factors",)
