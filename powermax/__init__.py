from .powermax import PowerMax, VERSION
from .deadline import Deadline
from .exceptions import (
    ArrayNotAllowedError,
    CountMismatchError,
    DecodeError,
    IteratorRangeError,
    JobNotFoundError,
    OperationFailedError,
    PowerMaxError,
    PowerMaxHTTPError,
    PowerMaxTimeoutError,
    TransportError,
)
from .iterators import IteratorWalker, ResultIterator
from .jobs import Job, JobPoller, job_to_string
from .responses import ResponseDict, ResponseList
