"""
Paginated result sets.

Listing requests whose result is larger than one page return an iterator: the
first page of results together with the id of a server-side cursor over the
rest. The :class:`IteratorWalker` fetches the remaining pages by absolute
offset and releases the cursor once they have all been read.
"""

import logging

from .deadline import Deadline
from .exceptions import (
    CountMismatchError,
    DecodeError,
    IteratorRangeError,
    PowerMaxError,
    PowerMaxHTTPError,
    PowerMaxTimeoutError,
)
from .responses import ResponseDict

LOG = logging.getLogger(__name__)

ITERATOR_PATH = "common/Iterator/{0}"
ITERATOR_PAGE_PATH = ITERATOR_PATH + "/page"
# Seconds allowed for releasing a cursor once a drain has run out of time.
RELEASE_GRACE = 0.5


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


class ResultIterator(ResponseDict):
    """Handle on a server-side cursor, with the first page of results."""

    @classmethod
    def from_response(cls, content):
        """Decode a listing response into an iterator handle.

        :raises: :class:`DecodeError` if the body is not an iterator.

        """
        if not isinstance(content, dict):
            raise DecodeError(
                "Response is not an iterator: {0!r}".format(content))
        count = content.get("count")
        max_page_size = content.get("maxPageSize")
        if not _is_int(count) or count < 0:
            raise DecodeError("Iterator has invalid count {0!r}".format(count))
        if not _is_int(max_page_size) or max_page_size < 1:
            raise DecodeError("Iterator has invalid maxPageSize {0!r}".format(
                max_page_size))
        result_list = content.get("resultList", {"from": 1, "to": 0,
                                                 "result": []})
        if not isinstance(result_list, dict) or \
                not isinstance(result_list.get("result", []), list):
            raise DecodeError("Iterator has invalid resultList {0!r}".format(
                result_list))
        first, last = result_list.get("from", 1), result_list.get("to", 0)
        if not _is_int(first) or not _is_int(last):
            raise DecodeError("Iterator has invalid page range {0!r}-{1!r}"
                              .format(first, last))
        if last > count or last - first + 1 > max_page_size:
            raise DecodeError(
                "First page {0}-{1} does not fit count {2} and page size {3}"
                .format(first, last, count, max_page_size))
        if last >= first and first != 1:
            raise DecodeError("First page starts at {0}, not 1".format(first))
        if (count > last or max_page_size < count) and not content.get("id"):
            raise DecodeError("Iterator over {0} results has no id".format(
                count))
        iterator = cls(content)
        iterator.headers = getattr(content, "headers", {})
        return iterator

    @property
    def iterator_id(self):
        return self.get("id")

    @property
    def count(self):
        return self["count"]

    @property
    def max_page_size(self):
        return self["maxPageSize"]

    @property
    def expiration_time(self):
        return self.get("expirationTime")

    @property
    def first_page(self):
        return self.get("resultList", {}).get("result", [])

    @property
    def first_from(self):
        return self.get("resultList", {}).get("from", 1)

    @property
    def first_to(self):
        return self.get("resultList", {}).get("to", 0)


def page_range(iterator, start, end=0):
    """Return the page range to request from an iterator.

    end defaults, if 0 or wider than a page, to the end of the page starting
    at start, and is clamped to the iterator's count.

    :raises: :class:`IteratorRangeError` if the range is empty or starts
             outside the result set.

    """
    if end == 0 or end - start + 1 > iterator.max_page_size:
        end = start + iterator.max_page_size - 1
    if end > iterator.count:
        end = iterator.count
    if start < 1 or start > end:
        raise IteratorRangeError(
            "Page {0}-{1} is outside iterator {2} of {3} results".format(
                start, end, iterator.iterator_id, iterator.count))
    return start, end


def _release_deadline(deadline):
    """Return the deadline for releasing a cursor after a drain.

    An expired or cancelled drain gets one attempt of at most RELEASE_GRACE
    seconds. Otherwise the release shares the drain's remaining time, but
    never less than RELEASE_GRACE.

    """
    if deadline.expired():
        return Deadline.after(RELEASE_GRACE)
    remaining = deadline.remaining()
    if remaining is None:
        return None
    return Deadline.after(max(remaining, RELEASE_GRACE))


def _project(elements, key):
    if key is None:
        return list(elements)
    projected = []
    for element in elements:
        if not isinstance(element, dict) or key not in element:
            raise DecodeError("Iterator element {0!r} has no {1}".format(
                element, key))
        projected.append(element[key])
    return projected


class IteratorWalker(object):

    """Drains iterators into ordered lists.

    :param request: Callable performing a REST request, with the signature of
                    :meth:`powermax.PowerMax._request`.

    """

    def __init__(self, request):
        self._request = request

    def begin(self, path, params=None, deadline=None):
        """Issue a listing request and return the iterator it created.

        :rtype: :class:`ResultIterator`

        """
        content = self._request("GET", path, params=params, deadline=deadline)
        iterator = ResultIterator.from_response(content)
        LOG.debug("Iterator %s holds %s results, %s per page",
                  iterator.iterator_id, iterator.count,
                  iterator.max_page_size)
        return iterator

    def fetch_page(self, iterator, start, end=0, key=None, deadline=None):
        """Return the results from start to end of an iterator, in order.

        :param iterator: The iterator to read.
        :type iterator: :class:`ResultIterator`
        :param start: 1-based offset of the first result.
        :type start: int
        :param end: 1-based offset of the last result, see :func:`page_range`.
        :type end: int, optional
        :param key: If given, return this field of each result rather than
                    the results themselves.
        :type key: str, optional

        :raises: :class:`IteratorRangeError`, :class:`DecodeError`

        """
        start, end = page_range(iterator, start, end)
        LOG.debug("Retrieving iterator %s page %s to %s",
                  iterator.iterator_id, start, end)
        content = self._request(
            "GET", ITERATOR_PAGE_PATH.format(iterator.iterator_id),
            params={"from": start, "to": end}, deadline=deadline,
            versioned=False)
        if not isinstance(content, dict) or \
                not isinstance(content.get("result"), list):
            raise DecodeError("Response is not an iterator page: {0!r}".format(
                content))
        return _project(content["result"], key)

    def drain(self, iterator, key=None, deadline=None):
        """Return every result of an iterator, in offset order.

        The server-side cursor is released once the pages have been read, or
        the walk has failed, if the results did not fit in the first page.

        :raises: :class:`CountMismatchError` if the number of results
                 retrieved differs from the iterator's count.
        :raises: :class:`PowerMaxTimeoutError` with the results retrieved so
                 far if the deadline expires first.

        """
        deadline = deadline or Deadline()
        try:
            elements = _project(iterator.first_page, key)
            start = iterator.first_to + 1
            while len(elements) < iterator.count and start <= iterator.count:
                if deadline.expired():
                    raise self._timed_out(iterator, elements, deadline)
                try:
                    page = self.fetch_page(iterator, start, key=key,
                                           deadline=deadline)
                except PowerMaxTimeoutError:
                    raise self._timed_out(iterator, elements, deadline)
                if not page:
                    break
                elements.extend(page)
                start += len(page)
            if len(elements) != iterator.count:
                raise CountMismatchError(iterator.count, len(elements),
                                         elements)
            return elements
        finally:
            # Single page results leave no cursor behind on the server.
            if iterator.max_page_size < iterator.count:
                self.release(iterator, deadline=_release_deadline(deadline))

    def release(self, iterator, deadline=None):
        """Delete the server-side cursor of an iterator.

        Failures are logged, not raised.

        :param deadline: Bounds the delete request.
        :type deadline: :class:`Deadline`, optional

        """
        iterator_id = iterator.iterator_id
        try:
            self._request("DELETE", ITERATOR_PATH.format(iterator_id),
                          deadline=deadline, versioned=False)
        except PowerMaxHTTPError as err:
            if err.code == 404:
                LOG.debug("Iterator %s was already gone", iterator_id)
            else:
                LOG.warning("Failed to delete iterator %s: %s",
                            iterator_id, err)
        except PowerMaxError as err:
            LOG.warning("Failed to delete iterator %s: %s", iterator_id, err)
        else:
            LOG.info("Deleted iterator %s", iterator_id)

    @staticmethod
    def _timed_out(iterator, elements, deadline):
        cause = "cancelled" if deadline.cancelled else "timed out"
        return PowerMaxTimeoutError(
            "Draining iterator {0} {1} after {2} of {3} results".format(
                iterator.iterator_id, cause, len(elements), iterator.count),
            partial=list(elements))
