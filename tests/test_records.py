"""
Record Store Tests
"""
from datetime import datetime, timedelta, timezone

import pytest

import db
import records
from models import MedicalRecord
from normalize.transformer import normalize


class TestRecordStore:

    def test_save_and_get(self, database, sample_extraction):
        saved = records.save_record(normalize(sample_extraction), created_by="tester")

        assert saved.id
        loaded = records.get_record(saved.id)
        assert loaded.name == "张三"
        assert loaded.created_by == "tester"
        assert loaded.diagnosis_info["other_diagnoses"][0]["diagnosis"] == "高血压"

    def test_get_form(self, database, sample_extraction):
        saved = records.save_record(normalize(sample_extraction))
        form = records.get_record_form(saved.id)
        assert form.main_disease_code == "I25.1"
        assert form.actual_days == "9"

    def test_unknown_id(self, database):
        with pytest.raises(records.RecordNotFound):
            records.get_record("missing")
        with pytest.raises(records.RecordNotFound):
            records.delete_record("missing")
        with pytest.raises(records.RecordNotFound):
            records.update_record("missing", normalize({}))

    def test_update(self, database, sample_extraction):
        saved = records.save_record(normalize(sample_extraction))
        form = normalize(sample_extraction)
        form.name = "张三丰"
        form.main_diagnosis = "心绞痛"

        updated = records.update_record(saved.id, form)

        assert updated.name == "张三丰"
        assert updated.diagnosis_info["main_diagnosis"] == "心绞痛"
        assert records.get_record(saved.id).diagnosis_info["main_diagnosis"] == "心绞痛"

    def test_delete(self, database):
        saved = records.save_record(normalize({"姓名": "王五"}))
        records.delete_record(saved.id)
        with pytest.raises(records.RecordNotFound):
            records.get_record(saved.id)


class TestListRecords:

    @pytest.fixture
    def stored(self, database):
        now = datetime.now(timezone.utc)
        rows = [
            MedicalRecord(id="aaa-111", name="Alice", created_at=now - timedelta(days=2)),
            MedicalRecord(id="bbb-222", name="张三", created_at=now - timedelta(days=1)),
            MedicalRecord(id="ccc-333", name="alicia", created_at=now),
        ]
        with db.get_session() as session:
            for row in rows:
                session.add(row)
            session.commit()

    def test_newest_first(self, stored):
        assert [r.id for r in records.list_records()] == ["ccc-333", "bbb-222", "aaa-111"]

    def test_search_name_case_insensitive(self, stored):
        assert [r.id for r in records.list_records(search="ALIC")] == ["ccc-333", "aaa-111"]

    def test_search_id(self, stored):
        assert [r.id for r in records.list_records(search="222")] == ["bbb-222"]

    def test_search_wildcards_are_literal(self, stored):
        assert records.list_records(search="_") == []
        assert records.list_records(search="%") == []
        assert [r.id for r in records.list_records(search="-2")] == ["bbb-222"]

    def test_pagination(self, stored):
        assert [r.id for r in records.list_records(offset=1, limit=1)] == ["bbb-222"]

    def test_summary_fields(self, stored):
        summary = records.summarize(records.list_records(search="张三")[0])
        assert set(summary) == set(records.SUMMARY_FIELDS)
