"""Tests for the audio job record store."""

from datetime import timedelta

import pytest

from app import store
from app.errors import JobAlreadyExistsError
from app.models import AudioJob, JobStatus


def _create(session, job_id="J1", owner_id="alice"):
    job = store.create_job(
        session,
        job_id=job_id,
        owner_id=owner_id,
        stored_name=f"1-{job_id}.mp3",
        original_name=f"{job_id}.mp3",
    )
    session.commit()
    return job


class TestCreateJob:
    """Tests for store.create_job."""

    def test_new_job_is_uploaded(self, db_session):
        job = _create(db_session)

        assert job.status == JobStatus.UPLOADED
        assert job.transcription_result is None
        assert job.created_at == job.last_updated

    def test_duplicate_id_rejected(self, db_session):
        """A second insert with the same id must not overwrite the first."""
        _create(db_session, owner_id="alice")

        with pytest.raises(JobAlreadyExistsError):
            _create(db_session, owner_id="bob")

        assert store.get_job(db_session, "J1").owner_id == "alice"

    def test_not_committed_by_store(self, temp_db):
        """Store primitives leave the commit to the caller."""
        _, _, SessionFactory = temp_db
        with SessionFactory() as session:
            store.create_job(session, "J1", "alice", "s", "o")
            session.rollback()

        with SessionFactory() as session:
            assert store.get_job(session, "J1") is None


class TestUpdateJob:
    """Tests for store.update_job."""

    def test_partial_update(self, db_session):
        job = _create(db_session)
        before = job.last_updated

        updated = store.update_job(db_session, "J1", status=JobStatus.PROCESSING.value)

        assert updated.status == "processing"
        assert updated.original_name == "J1.mp3"
        assert updated.last_updated >= before

    def test_missing_job_returns_none(self, db_session):
        """update never creates a record."""
        assert store.update_job(db_session, "nope", status="processing") is None
        assert store.get_job(db_session, "nope") is None

    def test_immutable_fields_rejected(self, db_session):
        _create(db_session)

        with pytest.raises(ValueError):
            store.update_job(db_session, "J1", owner_id="mallory")
        with pytest.raises(ValueError):
            store.update_job(db_session, "J1", transcription_result={"text": "x"})


class TestRecordTranscription:
    """Tests for store.record_transcription."""

    def test_sets_result_and_status(self, db_session):
        _create(db_session)

        job = store.record_transcription(db_session, "J1", {"text": "hello"})
        db_session.commit()

        assert job.status == JobStatus.TRANSCRIBED
        assert job.transcription_result == {"text": "hello"}

    def test_first_result_kept(self, db_session):
        """A second result never replaces or clears the stored one."""
        _create(db_session)
        store.record_transcription(db_session, "J1", {"text": "first"})
        db_session.commit()

        job = store.record_transcription(db_session, "J1", {"text": "second"})
        db_session.commit()

        assert job.transcription_result == {"text": "first"}

    def test_repeat_keeps_last_updated(self, db_session):
        """A repeated result is not a transition; last_updated stays put."""
        _create(db_session)
        first = store.record_transcription(db_session, "J1", {"text": "first"})
        db_session.commit()
        stamped = first.last_updated

        again = store.record_transcription(db_session, "J1", {"text": "second"})
        db_session.commit()

        assert again.last_updated == stamped
        assert again.status == JobStatus.TRANSCRIBED

    def test_none_result_rejected(self, db_session):
        _create(db_session)

        with pytest.raises(ValueError):
            store.record_transcription(db_session, "J1", None)

        assert store.get_job(db_session, "J1").status == JobStatus.UPLOADED

    def test_missing_job_returns_none(self, db_session):
        assert store.record_transcription(db_session, "nope", {"text": "x"}) is None


class TestDeleteAndList:
    def test_delete_existing(self, db_session):
        _create(db_session)

        assert store.delete_job(db_session, "J1") is True
        db_session.commit()
        assert store.get_job(db_session, "J1") is None

    def test_delete_missing(self, db_session):
        assert store.delete_job(db_session, "J1") is False

    def test_list_by_owner_newest_first(self, db_session):
        """Only the owner's jobs, most recent first."""
        old = _create(db_session, "J1", "alice")
        new = _create(db_session, "J2", "alice")
        _create(db_session, "J3", "bob")
        old.created_at = new.created_at - timedelta(minutes=5)
        db_session.commit()

        jobs = store.list_jobs_by_owner(db_session, "alice")

        assert [j.job_id for j in jobs] == ["J2", "J1"]
        assert all(isinstance(j, AudioJob) for j in jobs)

    def test_delete_all(self, db_session):
        _create(db_session, "J1")
        _create(db_session, "J2")

        assert store.delete_all_jobs(db_session) == 2
        db_session.commit()
        assert store.list_jobs_by_owner(db_session, "alice") == []
