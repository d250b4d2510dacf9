"""
Exception types raised by the PowerMax client, the job poller and the
iterator walker.
"""


class PowerMaxError(Exception):
    """Exception type raised by PowerMax objects.

    :param reason: A message describing why the error occurred.
    :type reason: str

    :ivar str reason: A message describing why the error occurred.

    """
    def __init__(self, reason):
        self.reason = reason
        super(PowerMaxError, self).__init__(reason)

    def __str__(self):
        return "{0}: {1}".format(self.__class__.__name__, self.reason)


class PowerMaxHTTPError(PowerMaxError):
    """Exception raised as a result of a non-2xx response status code.

    :param target: IP or DNS name of the Unisphere server that received the
                   HTTP request.
    :type target: str
    :param rest_version: The REST API version that was used when making the
                         request.
    :type rest_version: str
    :param response: The response of the HTTP request that caused the error.
    :type response: :class:`requests.Response`

    :ivar str target: IP or DNS name of the Unisphere server.
    :ivar str rest_version: The REST API version used for the request.
    :ivar int code: The HTTP response status code of the request.
    :ivar dict headers: A dictionary containing the header information. Keys
                        are case-insensitive.
    :ivar str reason: The message returned by Unisphere if there was one,
                      else the textual reason for the HTTP status code.
    :ivar str text: The body of the response.

    """
    def __init__(self, target, rest_version, response):
        super(PowerMaxHTTPError, self).__init__(
            _server_message(response) or response.reason)
        self.target = target
        self.rest_version = rest_version
        self.code = response.status_code
        self.headers = response.headers
        self.text = response.text

    def __str__(self):
        msg = ("PowerMaxHTTPError status code {0} returned by REST "
               "version {1} at {2}: {3}\n{4}")
        return msg.format(self.code, self.rest_version, self.target,
                          self.reason, self.text)


class TransportError(PowerMaxError):
    """The HTTP call failed before a status code was obtained."""


class DecodeError(PowerMaxError):
    """A response body could not be decoded into the expected resource."""


class IteratorRangeError(DecodeError):
    """A page range is inconsistent with the iterator's declared count."""


class ArrayNotAllowedError(PowerMaxError):
    """The array is not in the client's list of allowed arrays."""


class JobNotFoundError(PowerMaxError):
    """The job being polled does not exist on the server.

    :ivar str job_id: Identifier of the missing job.

    """
    def __init__(self, job_id, reason=None):
        self.job_id = job_id
        super(JobNotFoundError, self).__init__(
            reason or "Job not found: {0}".format(job_id))


class OperationFailedError(PowerMaxError):
    """A job reached the terminal FAILED status.

    :ivar job: The terminal job.
    :vartype job: :class:`powermax.jobs.Job`
    :ivar str result: The result text reported by the server.

    """
    def __init__(self, job, operation=None):
        self.job = job
        self.result = job.result
        prefix = "The {0} job failed".format(operation) if operation \
            else "Job failed"
        super(OperationFailedError, self).__init__(
            "{0}: {1}".format(prefix, job.to_string()))


class PowerMaxTimeoutError(PowerMaxError, TimeoutError):
    """The caller's deadline expired, or was cancelled, while polling or paging.

    Also a builtin :class:`TimeoutError`. Whatever partial state was available
    when the deadline expired is kept for diagnostics.

    :ivar job: The last job observed while polling, if any.
    :ivar list partial: The elements drained before the deadline expired,
                        if paging.

    """
    def __init__(self, reason, job=None, partial=None):
        self.job = job
        self.partial = partial
        super(PowerMaxTimeoutError, self).__init__(reason)

    @property
    def last_status(self):
        return self.job.status if self.job is not None else None


class CountMismatchError(PowerMaxError):
    """Draining an iterator returned a different number of elements than
    the iterator declared.

    :ivar int expected: The count declared by the iterator.
    :ivar int actual: The number of elements actually retrieved.
    :ivar list partial: The elements retrieved.

    """
    def __init__(self, expected, actual, partial=None):
        self.expected = expected
        self.actual = actual
        self.partial = partial
        super(CountMismatchError, self).__init__(
            "Expected {0} ids but got {1} ids".format(expected, actual))


def _server_message(response):
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("message")
    return None
