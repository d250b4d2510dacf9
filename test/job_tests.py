"""
Unit tests for job polling
"""

import threading
import time

import mock

from powermax import (
    DecodeError,
    Job,
    JobNotFoundError,
    JobPoller,
    OperationFailedError,
    PowerMax,
    PowerMaxHTTPError,
    PowerMaxTimeoutError,
    ResponseDict,
    job_to_string,
)
from powermax.deadline import Deadline
from powermax.jobs import JOB_STATUS_RUNNING, JOB_STATUS_SUCCEEDED
from powermax.mock import MockUnisphere

SYMMETRIX_ID = "000197900046"
JOB_ID = "1234567890123"
JOB_PATH = "system/symmetrix/{0}/job/{1}".format(SYMMETRIX_ID, JOB_ID)


def make_job(status, result="", job_id=JOB_ID, **fields):
    job = ResponseDict({"jobId": job_id, "status": status, "result": result})
    job.update(fields)
    return job


def make_http_error(status):
    response = mock.Mock(
        spec=["reason", "status_code", "headers", "text", "json"])
    response.status_code = status
    response.reason = "reason"
    response.headers = {}
    response.text = '{"message": "Cannot find job"}'
    response.json.return_value = {"message": "Cannot find job"}
    return PowerMaxHTTPError("unisphere", "100", response)


class TestJob(object):

    def test_from_response(self):
        job = Job.from_response(make_job("succeeded", "OK"))
        assert job.job_id == JOB_ID
        assert job.status == JOB_STATUS_SUCCEEDED
        assert job.result == "OK"
        assert job.is_terminal

    def test_from_response_keeps_fields(self):
        job = Job.from_response(make_job("RUNNING", name="Modify SG",
                                         username="smc"))
        assert job["name"] == "Modify SG"
        assert job["username"] == "smc"
        assert not job.is_terminal

    def test_from_response_errors(self):
        for content in ([], {"status": "RUNNING"},
                        make_job("DONE"), make_job(None)):
            try:
                Job.from_response(content)
            except DecodeError:
                pass
            else:
                raise AssertionError(content)

    def test_get_job_resource(self):
        job = Job.from_response(make_job(
            "SUCCEEDED", resourceLink="https://unisphere/univmax/restapi/100"
            "/sloprovisioning/symmetrix/000197900046/volume/0012A"))
        assert job.get_job_resource() == ("000197900046", "volume", "0012A")
        job = Job.from_response(make_job("SUCCEEDED", resourceLink="volume"))
        assert job.get_job_resource() == ("", "", "")
        job = Job.from_response(make_job("SUCCEEDED"))
        assert job.get_job_resource() == ("", "", "")

    def test_job_to_string(self):
        job = Job.from_response(make_job("FAILED", "Volume busy"))
        expected = "job id: {0} status: FAILED result: Volume busy".format(
            JOB_ID)
        assert job_to_string(job) == expected
        assert job.to_string() == expected
        assert job_to_string(None) == "<no job>"


class TestJobPoller(object):

    def setup_method(self, __):
        self.request = mock.Mock()
        self.poller = JobPoller(self.request, poll_interval=0)

    def test_running_then_succeeded(self):
        self.request.side_effect = [make_job("RUNNING"),
                                    make_job("SUCCEEDED", "OK")]
        job = self.poller.wait(SYMMETRIX_ID, JOB_ID)
        assert job.status == JOB_STATUS_SUCCEEDED
        assert job.result == "OK"
        assert self.request.call_count == 2
        self.request.assert_called_with("GET", JOB_PATH, deadline=mock.ANY)

    def test_failed_job_is_returned(self):
        self.request.side_effect = [make_job("FAILED", "Volume busy")]
        job = self.poller.wait(SYMMETRIX_ID, JOB_ID)
        assert job.status == "FAILED"
        assert job.result == "Volume busy"

    def test_job_not_found(self):
        self.request.side_effect = make_http_error(404)
        try:
            self.poller.wait(SYMMETRIX_ID, JOB_ID)
        except JobNotFoundError as err:
            assert err.job_id == JOB_ID
        else:
            raise AssertionError()

    def test_other_http_error_propagates(self):
        self.request.side_effect = make_http_error(500)
        try:
            self.poller.wait(SYMMETRIX_ID, JOB_ID)
        except PowerMaxHTTPError as err:
            assert err.code == 500
            assert not isinstance(err, JobNotFoundError)
        else:
            raise AssertionError()

    def test_terminal_status_regression(self):
        initial = Job.from_response(make_job("SUCCEEDED"))
        self.request.side_effect = [make_job("RUNNING")]
        try:
            self.poller.wait(SYMMETRIX_ID, JOB_ID, initial=initial)
        except DecodeError:
            pass
        else:
            raise AssertionError()

    def test_terminal_status_confirmed(self):
        initial = Job.from_response(make_job("SUCCEEDED"))
        self.request.side_effect = [make_job("SUCCEEDED", "OK")]
        job = self.poller.wait(SYMMETRIX_ID, JOB_ID, initial=initial)
        assert job.result == "OK"
        assert self.request.call_count == 1

    def test_timeout_carries_last_status(self):
        self.request.return_value = make_job("RUNNING")
        poller = JobPoller(self.request, poll_interval=0.05)
        timeout = 0.2
        start = time.monotonic()
        try:
            poller.wait(SYMMETRIX_ID, JOB_ID, deadline=Deadline(timeout))
        except PowerMaxTimeoutError as err:
            assert err.last_status == JOB_STATUS_RUNNING
            assert err.job.job_id == JOB_ID
        else:
            raise AssertionError()
        assert time.monotonic() - start < timeout + 0.05 + 0.5
        assert self.request.call_count >= 1

    def test_expired_deadline_does_not_poll(self):
        try:
            self.poller.wait(SYMMETRIX_ID, JOB_ID, deadline=Deadline(0))
        except PowerMaxTimeoutError as err:
            assert err.job is None
        else:
            raise AssertionError()
        assert self.request.call_count == 0

    def test_cancellation(self):
        self.request.return_value = make_job("RUNNING")
        poller = JobPoller(self.request, poll_interval=10)
        deadline = Deadline()
        timer = threading.Timer(0.1, deadline.cancel)
        timer.start()
        start = time.monotonic()
        try:
            poller.wait(SYMMETRIX_ID, JOB_ID, deadline=deadline)
        except PowerMaxTimeoutError as err:
            assert "cancelled" in err.reason
        else:
            raise AssertionError()
        finally:
            timer.cancel()
        assert time.monotonic() - start < 5

    def test_submit_sets_asynchronous(self):
        self.request.return_value = make_job("SCHEDULED")
        payload = {"executionOption": "SYNCHRONOUS", "key": "value"}
        job = self.poller.submit("PUT", "path", payload,
                                 headers={"X-Meta": "1"})
        assert job.status == "SCHEDULED"
        self.request.assert_called_once_with(
            "PUT", "path", {"executionOption": "ASYNCHRONOUS",
                            "key": "value"},
            headers={"X-Meta": "1"}, deadline=None)
        assert payload["executionOption"] == "SYNCHRONOUS"

    def test_run_failed(self):
        self.request.side_effect = [make_job("SCHEDULED"),
                                    make_job("FAILED", "No space")]
        try:
            self.poller.run("PUT", "path", {}, SYMMETRIX_ID,
                            operation="update storage group")
        except OperationFailedError as err:
            assert err.result == "No space"
            assert err.job.status == "FAILED"
            assert "update storage group" in err.reason
        else:
            raise AssertionError()

    def test_run_succeeded(self):
        self.request.side_effect = [make_job("SCHEDULED"),
                                    make_job("RUNNING"),
                                    make_job("SUCCEEDED")]
        job = self.poller.run("PUT", "path", {}, SYMMETRIX_ID)
        assert job.status == JOB_STATUS_SUCCEEDED
        assert self.request.call_count == 3

    def test_intervals(self):
        poller = JobPoller(self.request, poll_interval=1, backoff_factor=2,
                           max_poll_interval=5)
        intervals = poller._intervals()
        assert [next(intervals) for _ in range(5)] == [1, 2, 4, 5, 5]

        poller = JobPoller(self.request, poll_interval=1)
        intervals = poller._intervals()
        assert [next(intervals) for _ in range(3)] == [1, 1, 1]

        poller = JobPoller(self.request, poll_interval=2, jitter=0.5)
        for _ in range(20):
            assert 2 <= next(poller._intervals()) <= 3

    def test_bad_policy(self):
        for kwargs in ({"poll_interval": -1}, {"backoff_factor": 0.5},
                       {"jitter": -0.1}):
            try:
                JobPoller(self.request, **kwargs)
            except ValueError:
                pass
            else:
                raise AssertionError(kwargs)


class TestJobsAgainstMock(object):

    def setup_method(self, __):
        self.unisphere = MockUnisphere()
        self.array = PowerMax("unisphere", "username", "password",
                              poll_interval=0, adapter=self.unisphere)

    def job_reads(self):
        return [call for call in self.unisphere.calls
                if call[0] == "GET" and "/job/" in call[1]]

    def test_oscillating_job_converges(self):
        self.unisphere.store.job_polls = 3
        job = self.array.update_storage_group(
            SYMMETRIX_ID, "CSI-Test-SG-2",
            self.array.get_add_volumes_to_storage_group_payload(["00001"]))
        assert job.status == "SCHEDULED"
        done = self.array.wait_on_job_completion(SYMMETRIX_ID, job.job_id)
        assert done.status == JOB_STATUS_SUCCEEDED
        assert done.result == "Mock job completed"
        assert len(self.job_reads()) == 4
        # Later reads keep alternating on the server side.
        assert self.array.get_job(SYMMETRIX_ID, job.job_id).status == \
            JOB_STATUS_RUNNING

    def test_job_list(self):
        job = self.array.initiate_deallocation_of_tracks_from_volume(
            SYMMETRIX_ID, "00001")
        assert self.array.get_job_id_list(SYMMETRIX_ID) == [job.job_id]
        assert self.array.get_job_id_list(SYMMETRIX_ID, "RUNNING") == []
        self.array.wait_on_job_completion(SYMMETRIX_ID, job.job_id)
        assert self.array.get_job_id_list(
            SYMMETRIX_ID, JOB_STATUS_SUCCEEDED) == [job.job_id]

    def test_wait_timeout(self):
        self.unisphere.store.job_polls = 10 ** 6
        job = self.array.initiate_deallocation_of_tracks_from_volume(
            SYMMETRIX_ID, "00001")
        try:
            self.array.wait_on_job_completion(SYMMETRIX_ID, job.job_id,
                                              timeout=0.1)
        except PowerMaxTimeoutError as err:
            assert err.last_status == JOB_STATUS_RUNNING
        else:
            raise AssertionError()

    def test_job_failed(self):
        self.unisphere.induced.job_failed_error = True
        try:
            self.array.add_volumes_to_storage_group(
                SYMMETRIX_ID, "CSI-Test-SG-2", ["00001"])
        except OperationFailedError as err:
            assert err.result == "Mock job failed"
        else:
            raise AssertionError()

    def test_get_job_error(self):
        job = self.array.initiate_deallocation_of_tracks_from_volume(
            SYMMETRIX_ID, "00001")
        self.unisphere.induced.get_job_error = True
        try:
            self.array.wait_on_job_completion(SYMMETRIX_ID, job.job_id)
        except PowerMaxHTTPError as err:
            assert err.code == 500
        else:
            raise AssertionError()

    def test_unknown_job(self):
        try:
            self.array.get_job(SYMMETRIX_ID, "42")
        except JobNotFoundError as err:
            assert err.job_id == "42"
        else:
            raise AssertionError()

    def test_job_resource(self):
        job = self.array.add_volumes_to_storage_group(
            SYMMETRIX_ID, "CSI-Test-SG-2", ["00001"])
        assert job.get_job_resource() == (SYMMETRIX_ID, "storagegroup",
                                          "CSI-Test-SG-2")
