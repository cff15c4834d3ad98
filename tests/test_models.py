"""Tests for the models module."""

import pytest

from lane_broker.models import Footprint, Job, JobStatus, ResourceLane


class TestFootprint:
    def test_defaults_are_zero(self):
        fp = Footprint()
        assert (fp.lanes, fp.memory, fp.bandwidth, fp.storage) == (0, 0, 0, 0)

    def test_negative_dimension_raises(self):
        with pytest.raises(ValueError):
            Footprint(memory=-1)

    def test_add_and_subtract(self):
        a = Footprint(lanes=2, memory=100, bandwidth=10, storage=5)
        b = Footprint(lanes=1, memory=50, bandwidth=5, storage=5)
        assert a + b == Footprint(lanes=3, memory=150, bandwidth=15, storage=10)
        assert a - b == Footprint(lanes=1, memory=50, bandwidth=5, storage=0)

    def test_fits_within_every_dimension(self):
        capacity = Footprint(lanes=4, memory=100, bandwidth=10, storage=10)
        assert Footprint(lanes=4, memory=100, bandwidth=10, storage=10).fits_within(capacity)
        assert Footprint(lanes=1).fits_within(capacity)

    def test_partial_fit_is_not_a_fit(self):
        capacity = Footprint(lanes=4, memory=100, bandwidth=10, storage=10)
        assert not Footprint(lanes=1, storage=11).fits_within(capacity)
        assert not Footprint(lanes=5).fits_within(capacity)

    def test_dimensions_exceeding(self):
        capacity = Footprint(lanes=4, memory=100, bandwidth=10, storage=10)
        fp = Footprint(lanes=5, memory=100, bandwidth=11, storage=0)
        assert fp.dimensions_exceeding(capacity) == ("lanes", "bandwidth")


class TestResourceLane:
    def test_rate_must_be_positive(self):
        with pytest.raises(ValueError):
            ResourceLane(index=0, rate=0)

    def test_default_rate(self):
        assert ResourceLane(index=3).rate == 1000.0


class TestJob:
    def test_starts_pending(self):
        job = Job(id="a", lanes=2, length=100)
        assert job.status is JobStatus.PENDING
        assert job.submitted_at is None

    def test_footprint(self):
        job = Job(id="a", lanes=2, length=100, memory=64, bandwidth=8, storage=16)
        assert job.footprint == Footprint(lanes=2, memory=64, bandwidth=8, storage=16)

    def test_zero_lanes_raises(self):
        with pytest.raises(ValueError):
            Job(id="a", lanes=0, length=100)

    def test_non_positive_length_raises(self):
        with pytest.raises(ValueError):
            Job(id="a", lanes=1, length=0)

    def test_negative_memory_raises(self):
        with pytest.raises(ValueError):
            Job(id="a", lanes=1, length=10, memory=-5)

    def test_lifecycle_transitions(self):
        job = Job(id="a", lanes=1, length=10)
        job.transition(JobStatus.RUNNING)
        job.transition(JobStatus.FINISHED)
        assert job.status is JobStatus.FINISHED
        assert job.status.is_terminal

    def test_running_never_reverts_to_pending(self):
        job = Job(id="a", lanes=1, length=10)
        job.transition(JobStatus.RUNNING)
        with pytest.raises(ValueError):
            job.transition(JobStatus.PENDING)

    def test_terminal_status_is_final(self):
        job = Job(id="a", lanes=1, length=10)
        job.transition(JobStatus.STUCK)
        with pytest.raises(ValueError):
            job.transition(JobStatus.RUNNING)

    def test_pending_cannot_finish_directly(self):
        job = Job(id="a", lanes=1, length=10)
        with pytest.raises(ValueError):
            job.transition(JobStatus.FINISHED)

    def test_jobs_compare_by_identity(self):
        assert Job(id="a", lanes=1, length=10) != Job(id="a", lanes=1, length=10)

    def test_str(self):
        assert str(Job(id="a", lanes=2, length=10)) == "Job(a: 2 lanes, pending)"
