from unittest.mock import patch

import pytest

from pagegrade.features.analysis.models.analysis_job import JobStatus
from pagegrade.features.analysis.services.store.analysis_store import (
    AnalysisStore,
    job_key,
    share_key,
    share_owner_key,
)
from pagegrade.platform.exceptions import InvalidStatusTransition, JobNotFoundError


class TestAnalysisStore:
    def test_create_and_get(self, store):
        job = store.create("https://example.com")

        fetched = store.get(job.id)

        assert fetched == job
        assert fetched.status == JobStatus.PENDING
        assert len(job.id) == 36

    def test_records_expire_after_ttl(self, redis_client):
        store = AnalysisStore(redis_client, ttl=120)
        job = store.create("https://example.com")

        assert 0 < redis_client.ttl(job_key(job.id)) <= 120

    def test_record_is_stored_as_camel_case_json(self, store, redis_client):
        job = store.create("https://example.com")

        raw = redis_client.get(job_key(job.id))

        assert '"createdAt"' in raw
        assert '"shareToken"' in raw

    def test_get_unknown_returns_none(self, store):
        assert store.get("missing") is None

    def test_update_merges_fields_and_bumps_updated_at(self, store):
        job = store.create("https://example.com")

        updated = store.update(job.id, status=JobStatus.PROCESSING, stage="fetch", progress=10)

        assert updated.status == JobStatus.PROCESSING
        assert updated.stage == "fetch"
        assert updated.progress == 10
        assert updated.url == job.url
        assert updated.updated_at >= job.updated_at
        assert store.get(job.id) == updated

    def test_update_unknown_job_raises(self, store):
        with pytest.raises(JobNotFoundError):
            store.update("missing", progress=10)

    @pytest.mark.parametrize(
        "path, target",
        [
            ((JobStatus.PROCESSING,), JobStatus.PENDING),
            ((JobStatus.PROCESSING, JobStatus.COMPLETED), JobStatus.PROCESSING),
            ((JobStatus.PROCESSING, JobStatus.COMPLETED), JobStatus.FAILED),
            ((JobStatus.FAILED,), JobStatus.PROCESSING),
            ((), JobStatus.COMPLETED),
        ],
    )
    def test_status_never_moves_backwards(self, store, path, target):
        job = store.create("https://example.com")
        for status in path:
            store.update(job.id, status=status)

        with pytest.raises(InvalidStatusTransition):
            store.update(job.id, status=target)

    def test_enqueue_failure_can_fail_a_pending_job(self, store):
        job = store.create("https://example.com")

        failed = store.update(job.id, status=JobStatus.FAILED, error_message="queue down")

        assert failed.status == JobStatus.FAILED
        assert failed.error_message == "queue down"

    def test_terminal_job_accepts_share_token(self, store):
        job = store.create("https://example.com")
        store.update(job.id, status=JobStatus.PROCESSING)
        store.update(job.id, status=JobStatus.COMPLETED)

        token = store.create_share_token(job.id)

        assert store.get(job.id).share_token == token
        assert store.get(job.id).status == JobStatus.COMPLETED


class TestShareTokens:
    def test_token_is_128_bit_hex(self, store):
        job = store.create("https://example.com")

        token = store.create_share_token(job.id)

        assert len(token) == 32
        int(token, 16)

    def test_share_token_is_idempotent(self, store):
        job = store.create("https://example.com")

        first = store.create_share_token(job.id)
        second = store.create_share_token(job.id)

        assert first == second
        assert store.get_by_share_token(first).id == job.id

    def test_unknown_job_has_no_token(self, store):
        assert store.create_share_token("missing") is None

    def test_unknown_token_resolves_to_none(self, store):
        assert store.get_by_share_token("0" * 32) is None

    def test_colliding_token_is_regenerated(self, store, redis_client):
        other = store.create("https://other.example.com")
        job = store.create("https://example.com")
        redis_client.set(share_key("a" * 32), other.id)

        with patch(
            "pagegrade.features.analysis.services.store.analysis_store.generate_share_token",
            side_effect=["a" * 32, "b" * 32],
        ):
            token = store.create_share_token(job.id)

        assert token == "b" * 32
        assert store.get_by_share_token("a" * 32).id == other.id
        assert store.get_by_share_token(token).id == job.id

    def test_updates_refresh_share_mapping_ttl(self, redis_client):
        store = AnalysisStore(redis_client, ttl=300)
        job = store.create("https://example.com")
        token = store.create_share_token(job.id)
        redis_client.expire(share_key(token), 5)

        store.update(job.id, progress=50)

        assert redis_client.ttl(share_key(token)) > 5

    def test_share_during_worker_update_keeps_token(self, store):
        job = store.create("https://example.com")
        minted = []
        reads = []
        read = store.get_or_raise

        def read_then_share(job_id):
            stale = read(job_id)
            reads.append(job_id)
            if len(reads) == 1:
                # A share request lands between the worker's read and write
                minted.append(store.create_share_token(job_id))
            return stale

        with patch.object(store, "get_or_raise", side_effect=read_then_share):
            store.update(job.id, stage="fetch", progress=10)

        assert store.get(job.id).share_token == minted[0]
        assert store.create_share_token(job.id) == minted[0]

    def test_stale_write_back_does_not_change_token(self, store):
        job = store.create("https://example.com")
        stale = store.get(job.id)
        token = store.create_share_token(job.id)

        store.put(stale.model_copy(update={"progress": 40}))

        assert store.create_share_token(job.id) == token
        assert store.update(job.id, progress=60).share_token == token
        assert store.get_by_share_token(token).id == job.id

    def test_claimed_token_is_reused(self, store, redis_client):
        job = store.create("https://example.com")
        redis_client.set(share_owner_key(job.id), "c" * 32)

        token = store.create_share_token(job.id)

        assert token == "c" * 32
        assert store.get(job.id).share_token == token
        assert store.get_by_share_token(token).id == job.id
