"""
Asynchronous jobs.

Mutations submitted with ``executionOption`` set to ``ASYNCHRONOUS`` are run
by Unisphere in the background and reported through a job resource. The
:class:`JobPoller` submits such mutations and polls the job resource until it
reaches a terminal status, the caller's deadline expires, or an error occurs.
"""

import logging
import random

from .deadline import Deadline
from .exceptions import (
    DecodeError,
    JobNotFoundError,
    OperationFailedError,
    PowerMaxHTTPError,
    PowerMaxTimeoutError,
)
from .responses import ResponseDict

LOG = logging.getLogger(__name__)

JOB_STATUS_UNSCHEDULED = "UNSCHEDULED"
JOB_STATUS_SCHEDULED = "SCHEDULED"
JOB_STATUS_RUNNING = "RUNNING"
JOB_STATUS_SUCCEEDED = "SUCCEEDED"
JOB_STATUS_FAILED = "FAILED"

TERMINAL_STATUSES = frozenset([JOB_STATUS_SUCCEEDED, JOB_STATUS_FAILED])
# Unisphere also reports these while a job is being prepared.
INCOMPLETE_STATUSES = frozenset([
    JOB_STATUS_UNSCHEDULED,
    JOB_STATUS_SCHEDULED,
    JOB_STATUS_RUNNING,
    "CREATED",
    "VALIDATING",
    "VALIDATED",
])

EXECUTION_OPTION_SYNCHRONOUS = "SYNCHRONOUS"
EXECUTION_OPTION_ASYNCHRONOUS = "ASYNCHRONOUS"

DEFAULT_POLL_INTERVAL = 1.0


class Job(ResponseDict):
    """A server-side asynchronous operation.

    The job keeps every field returned by Unisphere. The status is stored
    upper-case.

    """

    @classmethod
    def from_response(cls, content):
        """Decode a response body into a Job.

        :raises: :class:`DecodeError` if the body is not a job.

        """
        if not isinstance(content, dict):
            raise DecodeError("Response is not a job: {0!r}".format(content))
        job_id = content.get("jobId")
        status = content.get("status")
        if not job_id:
            raise DecodeError("Job has no jobId: {0!r}".format(content))
        if not isinstance(status, str) or \
                status.upper() not in TERMINAL_STATUSES | INCOMPLETE_STATUSES:
            raise DecodeError("Job {0} has unknown status {1!r}".format(
                job_id, status))
        job = cls(content)
        job["status"] = status.upper()
        job.headers = getattr(content, "headers", {})
        return job

    @property
    def job_id(self):
        return self["jobId"]

    @property
    def status(self):
        return self["status"]

    @property
    def result(self):
        return self.get("result", "")

    @property
    def resource_link(self):
        return self.get("resourceLink", "")

    @property
    def completed_date(self):
        return self.get("completed_date", "")

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    def get_job_resource(self):
        """Parse the resource link of the job.

        :returns: The symmetrix id, the resource type (e.g. volume) and the
                  resource id. Three empty strings if the link cannot be
                  parsed.
        :rtype: tuple

        """
        if not self.resource_link:
            return "", "", ""
        parts = self.resource_link.split("/")
        if len(parts) < 3:
            return "", "", ""
        return parts[-3], parts[-2], parts[-1]

    def to_string(self):
        return job_to_string(self)


def job_to_string(job):
    """Return a compact summary of a job for diagnostics."""
    if job is None:
        return "<no job>"
    return "job id: {0} status: {1} result: {2}".format(
        job.get("jobId"), job.get("status"), job.get("result", ""))


class JobPoller(object):

    """Submits asynchronous mutations and waits for their jobs to finish.

    :param request: Callable performing a REST request, with the signature of
                    :meth:`powermax.PowerMax._request`.
    :param poll_interval: Seconds to sleep between two polls of a job.
    :type poll_interval: float, optional
    :param backoff_factor: Factor applied to the interval after every poll.
                           1 polls at a fixed interval.
    :type backoff_factor: float, optional
    :param max_poll_interval: Upper bound of the interval when backing off.
    :type max_poll_interval: float, optional
    :param jitter: Fraction of the interval added at random to every sleep.
    :type jitter: float, optional

    """

    def __init__(self, request, poll_interval=DEFAULT_POLL_INTERVAL,
                 backoff_factor=1.0, max_poll_interval=None, jitter=0.0):
        if poll_interval < 0:
            raise ValueError("poll_interval must not be negative")
        if backoff_factor < 1:
            raise ValueError("backoff_factor must be at least 1")
        if jitter < 0:
            raise ValueError("jitter must not be negative")
        self._request = request
        self.poll_interval = poll_interval
        self.backoff_factor = backoff_factor
        self.max_poll_interval = max_poll_interval
        self.jitter = jitter

    def _intervals(self):
        interval = self.poll_interval
        while True:
            delay = interval
            if self.jitter:
                delay += random.uniform(0, self.jitter * interval)
            if self.max_poll_interval is not None:
                delay = min(delay, self.max_poll_interval)
            yield delay
            interval *= self.backoff_factor
            if self.max_poll_interval is not None:
                interval = min(interval, self.max_poll_interval)

    def submit(self, method, path, payload, headers=None, deadline=None):
        """Issue an asynchronous mutation and return the job it created.

        :param method: HTTP method of the mutation.
        :param path: Resource path of the mutation.
        :param payload: Request payload. ``executionOption`` is set to
                        ``ASYNCHRONOUS`` on a copy of it.
        :type payload: dict
        :param headers: Extra headers sent with the request.
        :type headers: dict, optional
        :param deadline: Deadline bounding the request.
        :type deadline: :class:`Deadline`, optional

        :returns: The job as reported in the submission response.
        :rtype: :class:`Job`

        :raises: :class:`TransportError`, :class:`DecodeError`,
                 :class:`PowerMaxHTTPError`

        """
        payload = dict(payload or {})
        payload["executionOption"] = EXECUTION_OPTION_ASYNCHRONOUS
        content = self._request(method, path, payload, headers=headers,
                                deadline=deadline)
        job = Job.from_response(content)
        LOG.debug("Submitted job %s, status %s", job.job_id, job.status)
        return job

    def get_job(self, symmetrix_id, job_id, deadline=None):
        """Return the current state of a job.

        :raises: :class:`JobNotFoundError` if the job does not exist.

        """
        path = "system/symmetrix/{0}/job/{1}".format(symmetrix_id, job_id)
        try:
            content = self._request("GET", path, deadline=deadline)
        except PowerMaxHTTPError as err:
            if err.code == 404:
                raise JobNotFoundError(job_id, err.reason)
            raise
        return Job.from_response(content)

    def wait(self, symmetrix_id, job_id, deadline=None, initial=None):
        """Poll a job until it reaches a terminal status.

        :param symmetrix_id: The array running the job.
        :param job_id: The job to poll.
        :param deadline: Deadline bounding the whole wait. Without one, the
                         wait only ends on a terminal status or an error.
        :type deadline: :class:`Deadline`, optional
        :param initial: The job as reported when it was submitted. If it is
                        already terminal, one poll confirms it.
        :type initial: :class:`Job`, optional

        :returns: The job in its terminal status.
        :rtype: :class:`Job`

        :raises: :class:`PowerMaxTimeoutError` with the last observed job if
                 the deadline expires first.
        :raises: :class:`JobNotFoundError`, :class:`DecodeError`,
                 :class:`TransportError`

        .. note::

            A job whose wait failed is indeterminate: the mutation may or may
            not have been applied.

        """
        deadline = deadline or Deadline()
        confirm = initial if initial is not None and initial.is_terminal \
            else None
        last = initial
        intervals = self._intervals()
        while True:
            if deadline.expired():
                raise self._timed_out(job_id, last, deadline)
            try:
                job = self.get_job(symmetrix_id, job_id, deadline=deadline)
            except PowerMaxTimeoutError:
                raise self._timed_out(job_id, last, deadline)
            if confirm is not None and job.status != confirm.status:
                raise DecodeError(
                    "Job {0} went from terminal status {1} to {2}".format(
                        job_id, confirm.status, job.status))
            last = job
            LOG.debug("Polled job %s, status %s", job_id, job.status)
            if job.is_terminal:
                return job
            if not deadline.sleep(next(intervals)):
                raise self._timed_out(job_id, last, deadline)

    def run(self, method, path, payload, symmetrix_id, headers=None,
            deadline=None, operation=None):
        """Submit an asynchronous mutation and wait for it to succeed.

        :param operation: Name of the operation, used in error messages.
        :type operation: str, optional

        :returns: The succeeded job.
        :rtype: :class:`Job`

        :raises: :class:`OperationFailedError` if the job failed.

        """
        job = self.submit(method, path, payload, headers=headers,
                          deadline=deadline)
        job = self.wait(symmetrix_id, job.job_id, deadline=deadline,
                        initial=job)
        if job.status == JOB_STATUS_FAILED:
            LOG.error("Job %s failed: %s", job.job_id, job.result)
            raise OperationFailedError(job, operation)
        return job

    @staticmethod
    def _timed_out(job_id, last, deadline):
        cause = "cancelled" if deadline.cancelled else "timed out"
        return PowerMaxTimeoutError(
            "Wait on job {0} {1}, last status: {2}".format(
                job_id, cause, last.status if last is not None else None),
            job=last)
