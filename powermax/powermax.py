"""
This library provides an easy way to script provisioning tasks for Dell
PowerMax arrays through the Unisphere REST API.

Mutations that Unisphere runs asynchronously are driven to completion by a
:class:`powermax.jobs.JobPoller`, and listings that do not fit in one page are
drained by a :class:`powermax.iterators.IteratorWalker`.
"""

import functools
import json
import logging
import re
import time

import requests
from requests.auth import HTTPBasicAuth

from .deadline import Deadline
from .exceptions import (
    ArrayNotAllowedError,
    DecodeError,
    PowerMaxError,
    PowerMaxHTTPError,
    PowerMaxTimeoutError,
    TransportError,
)
from .iterators import IteratorWalker
from .jobs import (
    EXECUTION_OPTION_ASYNCHRONOUS,
    EXECUTION_OPTION_SYNCHRONOUS,
    DEFAULT_POLL_INTERVAL,
    JobPoller,
    job_to_string,
)
from .responses import ResponseDict, ResponseList

# The current version of this library.
VERSION = "1.0.0"

LOG = logging.getLogger(__name__)

SLO_PROVISIONING = "sloprovisioning/symmetrix/{0}"
SYSTEM = "system/symmetrix"
REPLICATION = "replication/symmetrix/{0}"

EMULATION = "FBA"
CAPACITY_UNIT = "CYL"
MAX_VOLUME_IDENTIFIER_LENGTH = 64

DEFAULT_TIMEOUT = 120

_PORT_ID = re.compile(r"\w+:(\d+)")


def _timed(func):
    """Log how long a client operation took, if the client asks for it."""
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        if not self._log_response_times:
            return func(self, *args, **kwargs)
        start = time.monotonic()
        try:
            return func(self, *args, **kwargs)
        finally:
            LOG.info("powermax-time: %s took %.2f seconds to complete",
                     func.__name__, time.monotonic() - start)
    return wrapper


def _volume_list(volume_ids):
    return [{"name": volume_id} for volume_id in volume_ids]


def _remote_sg_info(force, remote_symmetrix_id, remote_storage_group_id):
    info = {"force": force}
    if remote_symmetrix_id:
        info["remote_symmetrix_1_id"] = remote_symmetrix_id
        info["remote_symmetrix_1_sgs"] = [remote_storage_group_id]
    return info


class PowerMax(object):

    """Represents a Unisphere server and exposes PowerMax provisioning APIs.

    :param endpoint: IP address or domain name, with an optional port, of the
                     Unisphere server. A full https:// URL is accepted too.
    :type endpoint: str
    :param username: Username of the user with which to log in.
    :type username: str
    :param password: Password of the user with which to log in.
    :type password: str
    :param rest_version: REST API version to use when communicating with
                         Unisphere. Defaults to the newest supported one.
    :type rest_version: str, optional
    :param verify_https: Enable SSL certificate verification for HTTPS requests.
    :type verify_https: bool, optional
    :param ssl_cert: Path to SSL certificate or CA Bundle file. Ignored if
                     verify_https=False.
    :type ssl_cert: str, optional
    :param user_agent: String to be used as the HTTP User-Agent for requests.
    :type user_agent: str, optional
    :param request_kwargs: Keyword arguments that we will pass into the call
                           to requests.Session.request.
    :type request_kwargs: dict, optional
    :param allowed_arrays: Symmetrix ids of the arrays this object may
                           manage. Empty means every array is allowed.
    :type allowed_arrays: list of str, optional
    :param timeout: Timeout in seconds of a single HTTP request.
    :type timeout: float, optional
    :param poll_interval: Seconds to wait between two polls of a job.
    :type poll_interval: float, optional
    :param job_timeout: Default limit in seconds on waiting for a job. None
                        waits until the job finishes.
    :type job_timeout: float, optional
    :param log_response_times: Log how long each operation took.
    :type log_response_times: bool, optional
    :param adapter: Transport adapter mounted on the HTTP session, e.g.
                    :class:`powermax.mock.MockUnisphere`.
    :type adapter: :class:`requests.adapters.BaseAdapter`, optional

    :raises: :class:`PowerMaxError`

        - If Unisphere cannot be reached.
        - If the username and password are invalid.

    :raises: :class:`ValueError`

        - If the username or password is missing.
        - If the specified rest_version is not supported by this library.

    .. note::

        Valid entries in request_kwargs may vary by your version of requests.

        If you wish to use secure connections, we suggest you use an entry in
        request_kwargs rather than the verify_https and ssl_cert arguments.
        (e.g. request_kwargs={"verify": "path/to/ca_bundle"})

    """

    supported_rest_versions = [
            "100",
            "92",
            "91",
            "90",
        ]

    def __init__(self, endpoint, username, password, rest_version=None,
                 verify_https=False, ssl_cert=None, user_agent=None,
                 request_kwargs=None, allowed_arrays=None,
                 timeout=DEFAULT_TIMEOUT, poll_interval=DEFAULT_POLL_INTERVAL,
                 job_timeout=None, log_response_times=False, adapter=None):

        if not (username and password):
            raise ValueError("Must specify both username and password.")

        self._target = endpoint
        if endpoint.startswith("http"):
            self._base_url = "{0}/univmax/restapi".format(endpoint.rstrip("/"))
        else:
            self._base_url = "https://{0}/univmax/restapi".format(endpoint)

        self._request_kwargs = dict(request_kwargs or {})
        if not "verify" in self._request_kwargs:
            if ssl_cert and verify_https:
                self._request_kwargs["verify"] = ssl_cert
            else:
                self._request_kwargs["verify"] = verify_https

        self._user_agent = user_agent
        self._timeout = timeout
        self._job_timeout = job_timeout
        self._log_response_times = log_response_times
        self._allowed_arrays = []
        self.set_allowed_arrays(allowed_arrays or [])

        self._session = requests.Session()
        self._session.auth = HTTPBasicAuth(username, password)
        if adapter is not None:
            self._session.mount("https://", adapter)
            self._session.mount("http://", adapter)

        self._jobs = JobPoller(self._request, poll_interval=poll_interval)
        self._iterators = IteratorWalker(self._request)

        if rest_version:
            self._rest_version = self._check_rest_version(rest_version)
        else:
            self._rest_version = self.supported_rest_versions[0]

        self.authenticate()

    def _format_path(self, path, versioned=True):
        if versioned:
            return "{0}/{1}/{2}".format(self._base_url, self._rest_version,
                                        path)
        return "{0}/{1}".format(self._base_url, path)

    def _private_path(self, path):
        return "private/{0}/{1}".format(self._rest_version, path)

    def _request(self, method, path, data=None, params=None, headers=None,
                 deadline=None, versioned=True):
        """Perform HTTP request for REST API."""
        if path.startswith("http"):
            url = path  # For cases where URL of different form is needed.
        else:
            url = self._format_path(path, versioned)

        request_headers = {"Content-Type": "application/json",
                           "Accept": "application/json"}
        if self._user_agent:
            request_headers["User-Agent"] = self._user_agent
        if headers:
            request_headers.update(headers)

        kwargs = dict(self._request_kwargs)
        timeout = kwargs.pop("timeout", self._timeout)
        if deadline is not None:
            if deadline.expired():
                raise PowerMaxTimeoutError(
                    "Deadline expired before {0} {1}".format(method, url))
            timeout = deadline.clamp(timeout)

        body = None
        if data is not None:
            body = json.dumps(data).encode("utf-8")
            LOG.debug("payload: %s", body)
        try:
            response = self._session.request(
                method, url, data=body, params=params,
                headers=request_headers, timeout=timeout, **kwargs)
        except requests.exceptions.Timeout as err:
            if deadline is not None and deadline.expired():
                raise PowerMaxTimeoutError(
                    "{0} {1} timed out: {2}".format(method, url, err))
            raise TransportError(str(err))
        except requests.exceptions.RequestException as err:
            # error outside scope of HTTP status codes
            # e.g. unable to resolve domain name
            raise TransportError(str(err))
        LOG.debug("%s %s returned %s", method, url, response.status_code)

        if response.status_code in (200, 201, 202):
            if "application/json" in response.headers.get("Content-Type", ""):
                try:
                    content = response.json()
                except ValueError:
                    raise DecodeError("Response not in JSON: " + response.text)
                if isinstance(content, list):
                    content = ResponseList(content)
                elif isinstance(content, dict):
                    content = ResponseDict(content)
                else:
                    raise DecodeError(
                        "Unexpected JSON response: " + response.text)
                content.headers = response.headers
                return content
            raise DecodeError("Response not in JSON: " + response.text)
        elif response.status_code == 204:
            content = ResponseDict()
            content.headers = response.headers
            return content
        raise PowerMaxHTTPError(self._target, self._rest_version, response)

    def _get_id_list(self, path, key, params=None, versioned=True):
        content = self._request("GET", path, params=params,
                                versioned=versioned)
        ids = content.get(key, []) if isinstance(content, dict) else None
        if not isinstance(ids, list):
            raise DecodeError("Response has no {0} list: {1!r}".format(
                key, content))
        result = ResponseList(ids)
        result.headers = content.headers
        return result

    def _job_deadline(self, deadline=None, timeout=None):
        if timeout is None:
            timeout = self._job_timeout
        return Deadline.resolve(deadline, timeout)

    #
    # REST API session management methods
    #

    def _check_rest_version(self, version):
        """Validate a REST API version is supported by the library."""
        version = str(version)

        if version not in self.supported_rest_versions:
            msg = "Library is incompatible with REST API version {0}"
            raise ValueError(msg.format(version))

        return version

    @_timed
    def authenticate(self):
        """Check the credentials and the REST API version against Unisphere.

        :returns: A dictionary mapping "version" to the Unisphere version.
        :rtype: ResponseDict

        """
        version = self._request("GET", "system/version")
        LOG.debug("Authenticated against Unisphere %s at %s",
                  version.get("version"), self._target)
        return version

    def get_rest_version(self):
        """Get the REST API version being used by this object.

        :returns: The REST API version.
        :rtype: str

        """
        return self._rest_version

    def set_allowed_arrays(self, arrays):
        """Restrict this object to the given arrays.

        :param arrays: Symmetrix ids. An empty list allows every array.
        :type arrays: list of str

        """
        self._allowed_arrays = [str(array) for array in arrays]

    def get_allowed_arrays(self):
        return list(self._allowed_arrays)

    def is_allowed_array(self, symmetrix_id):
        """Check that an array may be managed by this object.

        :returns: True if it may.
        :raises: :class:`ArrayNotAllowedError` if it may not.

        """
        if not self._allowed_arrays or symmetrix_id in self._allowed_arrays:
            return True
        raise ArrayNotAllowedError(
            "The requested array ({0}) is ignored as it is not managed".format(
                symmetrix_id))

    #
    # System methods
    #

    @_timed
    def get_symmetrix_id_list(self):
        """Get the ids of the arrays known to Unisphere.

        :rtype: ResponseList

        """
        return self._get_id_list(SYSTEM, "symmetrixId")

    @_timed
    def get_symmetrix(self, symmetrix_id):
        """Get the attributes of an array.

        :param symmetrix_id: Id of the array.
        :type symmetrix_id: str

        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        return self._request("GET", "{0}/{1}".format(SYSTEM, symmetrix_id))

    #
    # Job methods
    #

    @_timed
    def get_job_id_list(self, symmetrix_id, status=None):
        """List the ids of the jobs of an array.

        :param status: Only list jobs in this status, e.g. "RUNNING".
        :type status: str, optional

        :rtype: ResponseList

        """
        self.is_allowed_array(symmetrix_id)
        params = {"status": status} if status else None
        return self._get_id_list(
            "{0}/{1}/job".format(SYSTEM, symmetrix_id), "jobId", params)

    @_timed
    def get_job(self, symmetrix_id, job_id):
        """Get the current state of a job.

        :rtype: :class:`powermax.jobs.Job`

        :raises: :class:`JobNotFoundError` if the job does not exist.

        """
        self.is_allowed_array(symmetrix_id)
        return self._jobs.get_job(symmetrix_id, job_id)

    @_timed
    def wait_on_job_completion(self, symmetrix_id, job_id, timeout=None,
                               deadline=None):
        """Poll a job until it succeeds or fails.

        :param timeout: Seconds to wait. Defaults to the job_timeout of this
                        object. Ignored if deadline is given.
        :type timeout: float, optional
        :param deadline: Deadline bounding the wait.
        :type deadline: :class:`powermax.deadline.Deadline`, optional

        :returns: The job in its terminal status. A FAILED job is returned,
                  not raised.
        :rtype: :class:`powermax.jobs.Job`

        :raises: :class:`PowerMaxTimeoutError` carrying the last job seen.

        """
        self.is_allowed_array(symmetrix_id)
        return self._jobs.wait(symmetrix_id, job_id,
                               deadline=self._job_deadline(deadline, timeout))

    @staticmethod
    def job_to_string(job):
        return job_to_string(job)

    #
    # Volume methods
    #

    def _volume_path(self, symmetrix_id, volume_id=None):
        path = SLO_PROVISIONING.format(symmetrix_id) + "/volume"
        if volume_id:
            path += "/" + volume_id
        return path

    @_timed
    def get_volume_ids_iterator(self, symmetrix_id, match=None, like=False,
                                deadline=None):
        """Start listing the volumes of an array.

        :param match: Only list volumes whose identifier is match.
        :type match: str, optional
        :param like: Match volumes whose identifier contains match instead.
        :type like: bool, optional

        :returns: The iterator, holding the first page of volume ids.
        :rtype: :class:`powermax.iterators.ResultIterator`

        """
        self.is_allowed_array(symmetrix_id)
        params = None
        if match:
            params = {"volume_identifier":
                      "<like>" + match if like else match}
        return self._iterators.begin(self._volume_path(symmetrix_id),
                                     params=params, deadline=deadline)

    @_timed
    def get_volumes_in_storage_group_iterator(self, symmetrix_id,
                                              storage_group_id,
                                              deadline=None):
        """Start listing the volumes of a storage group.

        :rtype: :class:`powermax.iterators.ResultIterator`

        """
        self.is_allowed_array(symmetrix_id)
        if not storage_group_id:
            raise ValueError("storage_group_id is empty")
        return self._iterators.begin(
            self._volume_path(symmetrix_id),
            params={"storageGroupId": storage_group_id}, deadline=deadline)

    @_timed
    def get_volume_ids_iterator_page(self, iterator, start, end=0):
        """Get one page of volume ids from an iterator.

        :param start: 1-based offset of the first id.
        :type start: int
        :param end: 1-based offset of the last id. 0, or a range wider than
                    a page, means the end of the page starting at start.
        :type end: int, optional

        :rtype: list of str

        """
        return self._iterators.fetch_page(iterator, start, end,
                                          key="volumeId")

    @_timed
    def delete_volume_ids_iterator(self, iterator):
        self._iterators.release(iterator)

    @_timed
    def get_volume_id_list(self, symmetrix_id, match=None, like=False,
                           deadline=None):
        """Get the ids of the volumes of an array.

        See :meth:`get_volume_ids_iterator` for match and like.

        :rtype: list of str

        :raises: :class:`CountMismatchError` if the pages returned by
                 Unisphere do not add up to the listing's count.

        """
        iterator = self.get_volume_ids_iterator(symmetrix_id, match, like,
                                                deadline=deadline)
        return self._iterators.drain(iterator, key="volumeId",
                                     deadline=deadline)

    @_timed
    def get_volume_id_list_in_storage_group(self, symmetrix_id,
                                            storage_group_id, deadline=None):
        """Get the ids of the volumes of a storage group.

        :rtype: list of str

        """
        iterator = self.get_volumes_in_storage_group_iterator(
            symmetrix_id, storage_group_id, deadline=deadline)
        return self._iterators.drain(iterator, key="volumeId",
                                     deadline=deadline)

    @_timed
    def get_volume(self, symmetrix_id, volume_id):
        """Get the attributes of a volume.

        :param volume_id: 5 digit hexadecimal id of the volume.
        :type volume_id: str

        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        return self._request("GET", self._volume_path(symmetrix_id,
                                                      volume_id))

    @_timed
    def rename_volume(self, symmetrix_id, volume_id, new_name):
        """Rename a volume.

        :returns: A dictionary describing the renamed volume.
        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        payload = {
            "editVolumeActionParam": {
                "modifyVolumeIdentifierParam": {
                    "volumeIdentifier": {
                        "volumeIdentifierChoice": "identifier_name",
                        "identifier_name": new_name,
                    },
                },
            },
            "executionOption": EXECUTION_OPTION_SYNCHRONOUS,
        }
        LOG.info("Renaming volume %s to %s", volume_id, new_name)
        volume = self._request("PUT", self._volume_path(symmetrix_id,
                                                        volume_id), payload)
        LOG.info("Successfully renamed volume: %s", volume_id)
        return volume

    @_timed
    def expand_volume(self, symmetrix_id, volume_id, new_size):
        """Expand a volume to a new, larger size.

        :param new_size: New size of the volume in cylinders.
        :type new_size: int

        :returns: A dictionary describing the expanded volume.
        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        payload = {
            "editVolumeActionParam": {
                "expandVolumeParam": {
                    "volumeAttribute": {
                        "volume_size": str(new_size),
                        "capacityUnit": CAPACITY_UNIT,
                    },
                },
            },
            "executionOption": EXECUTION_OPTION_SYNCHRONOUS,
        }
        self._request("PUT", self._volume_path(symmetrix_id, volume_id),
                      payload)
        return self.get_volume(symmetrix_id, volume_id)

    @_timed
    def delete_volume(self, symmetrix_id, volume_id):
        """Delete a volume.

        The tracks of the volume must have been deallocated with
        :meth:`initiate_deallocation_of_tracks_from_volume`, and the volume
        must not be in any storage group.

        """
        self.is_allowed_array(symmetrix_id)
        LOG.info("Deleting volume %s", volume_id)
        try:
            self._request("DELETE", self._volume_path(symmetrix_id, volume_id))
        except PowerMaxError as err:
            LOG.error("Error in delete_volume: %s", err)
            raise
        LOG.info("Successfully deleted volume: %s", volume_id)

    @_timed
    def initiate_deallocation_of_tracks_from_volume(self, symmetrix_id,
                                                    volume_id):
        """Start freeing the tracks of a volume.

        :returns: The job freeing the tracks. It is not waited on.
        :rtype: :class:`powermax.jobs.Job`

        """
        self.is_allowed_array(symmetrix_id)
        payload = {"editVolumeActionParam": {
            "freeVolumeParam": {"free_volume": True}}}
        LOG.info("Initiating track deallocation of volume %s", volume_id)
        return self._jobs.submit(
            "PUT", self._volume_path(symmetrix_id, volume_id), payload)

    def get_create_volume_in_storage_group_payload(
            self, size, volume_name, synchronous=False,
            remote_symmetrix_id=None, remote_storage_group_id=None):
        """Build the payload adding one new volume to a storage group.

        :param size: Size of the volume in cylinders.
        :type size: int

        :rtype: dict

        """
        add_volume_param = {
            "create_new_volumes": True,
            "emulation": EMULATION,
            "volumeAttributes": [{
                "num_of_vols": 1,
                "volumeIdentifier": {
                    "volumeIdentifierChoice": "identifier_name",
                    "identifier_name": volume_name,
                },
                "capacityUnit": CAPACITY_UNIT,
                "volume_size": str(size),
            }],
            "remoteSymmSGInfoParam": _remote_sg_info(
                True, remote_symmetrix_id, remote_storage_group_id),
        }
        payload = {
            "editStorageGroupActionParam": {
                "expandStorageGroupParam": {
                    "addVolumeParam": add_volume_param,
                },
            },
            "executionOption": EXECUTION_OPTION_SYNCHRONOUS if synchronous
            else EXECUTION_OPTION_ASYNCHRONOUS,
        }
        LOG.debug("payload: %s", payload)
        return payload

    def get_add_volumes_to_storage_group_payload(
            self, volume_ids, synchronous=False, force=False,
            remote_symmetrix_id=None, remote_storage_group_id=None):
        payload = {
            "editStorageGroupActionParam": {
                "expandStorageGroupParam": {
                    "addSpecificVolumeParam": {
                        "volumeId": list(volume_ids),
                        "remoteSymmSGInfoParam": _remote_sg_info(
                            force, remote_symmetrix_id,
                            remote_storage_group_id),
                    },
                },
            },
            "executionOption": EXECUTION_OPTION_SYNCHRONOUS if synchronous
            else EXECUTION_OPTION_ASYNCHRONOUS,
        }
        LOG.debug("payload: %s", payload)
        return payload

    def get_remove_volumes_from_storage_group_payload(
            self, volume_ids, force=False, remote_symmetrix_id=None,
            remote_storage_group_id=None):
        payload = {
            "editStorageGroupActionParam": {
                "removeVolumeParam": {
                    "volumeId": list(volume_ids),
                    "remoteSymmSGInfoParam": _remote_sg_info(
                        force, remote_symmetrix_id, remote_storage_group_id),
                },
            },
            "executionOption": EXECUTION_OPTION_SYNCHRONOUS,
        }
        LOG.debug("payload: %s", payload)
        return payload

    def _check_volume_name(self, volume_name):
        if len(volume_name) > MAX_VOLUME_IDENTIFIER_LENGTH:
            raise ValueError("Length of volume name exceeds max limit of "
                             "{0}".format(MAX_VOLUME_IDENTIFIER_LENGTH))

    @_timed
    def create_volume_in_storage_group(self, symmetrix_id, storage_group_id,
                                       volume_name, size, metadata=None,
                                       deadline=None):
        """Create a volume in a storage group and wait for it to exist.

        :param volume_name: Identifier of the new volume, at most 64
                            characters long.
        :type volume_name: str
        :param size: Size of the volume in cylinders.
        :type size: int
        :param metadata: Extra HTTP headers sent with the request.
        :type metadata: dict, optional
        :param deadline: Deadline bounding the wait on the job. Defaults to
                         the job_timeout of this object.
        :type deadline: :class:`powermax.deadline.Deadline`, optional

        :returns: A dictionary describing the new volume.
        :rtype: ResponseDict

        :raises: :class:`OperationFailedError` if the job failed.
        :raises: :class:`PowerMaxTimeoutError` if the deadline expired. The
                 volume may or may not have been created.

        """
        self.is_allowed_array(symmetrix_id)
        self._check_volume_name(volume_name)
        payload = self.get_create_volume_in_storage_group_payload(
            size, volume_name)
        self._jobs.run("PUT", self._storage_group_path(symmetrix_id,
                                                       storage_group_id),
                       payload, symmetrix_id, headers=metadata,
                       deadline=self._job_deadline(deadline),
                       operation="update storage group")
        return self.get_volume_by_identifier(symmetrix_id, storage_group_id,
                                             volume_name, size)

    @_timed
    def create_volume_in_storage_group_s(self, symmetrix_id, storage_group_id,
                                         volume_name, size, metadata=None,
                                         remote_symmetrix_id=None,
                                         remote_storage_group_id=None):
        """Create a volume in a storage group synchronously.

        If remote_symmetrix_id is given the volume is also added to
        remote_storage_group_id on that array.

        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        self._check_volume_name(volume_name)
        payload = self.get_create_volume_in_storage_group_payload(
            size, volume_name, synchronous=True,
            remote_symmetrix_id=remote_symmetrix_id,
            remote_storage_group_id=remote_storage_group_id)
        self.update_storage_group_s(symmetrix_id, storage_group_id, payload,
                                    headers=metadata)
        return self.get_volume_by_identifier(symmetrix_id, storage_group_id,
                                             volume_name, size)

    @_timed
    def get_volume_by_identifier(self, symmetrix_id, storage_group_id,
                                 volume_name, size):
        """Find a volume by identifier, storage group and size.

        :returns: The first matching volume.
        :rtype: ResponseDict

        :raises: :class:`PowerMaxError` if no volume matches.

        """
        volume_ids = self.get_volume_id_list(symmetrix_id, volume_name)
        if len(volume_ids) > 1:
            LOG.warning("Found multiple volumes matching the identifier %s",
                        volume_name)
        for volume_id in volume_ids:
            try:
                volume = self.get_volume(symmetrix_id, volume_id)
            except PowerMaxHTTPError as err:
                if err.code != 404:
                    raise
                continue
            if storage_group_id in volume.get("storageGroupId", []) and \
                    volume.get("cap_cyl") == size:
                return volume
        msg = "Failed to find newly created volume with name: {0} in SG: {1}"
        msg = msg.format(volume_name, storage_group_id)
        LOG.error(msg)
        raise PowerMaxError(msg)

    #
    # Storage group methods
    #

    def _storage_group_path(self, symmetrix_id, storage_group_id=None):
        path = SLO_PROVISIONING.format(symmetrix_id) + "/storagegroup"
        if storage_group_id:
            path += "/" + storage_group_id
        return path

    @_timed
    def get_storage_group_id_list(self, symmetrix_id):
        """List the ids of the storage groups of an array.

        :rtype: ResponseList

        """
        self.is_allowed_array(symmetrix_id)
        return self._get_id_list(self._storage_group_path(symmetrix_id),
                                 "storageGroupId")

    @_timed
    def get_storage_group(self, symmetrix_id, storage_group_id):
        self.is_allowed_array(symmetrix_id)
        return self._request("GET", self._storage_group_path(
            symmetrix_id, storage_group_id))

    def get_create_storage_group_payload(self, storage_group_id, srp_id,
                                         service_level, thick_volumes=False):
        """Build the payload creating a storage group.

        If srp_id is "None" the service level and thick_volumes are ignored.

        :rtype: dict

        """
        slo_params = []
        if srp_id != "None":
            slo_params = [{
                "sloId": service_level,
                "workloadSelection": "None",
                "volumeAttributes": [{
                    "volume_size": "0",
                    "capacityUnit": CAPACITY_UNIT,
                    "num_of_vols": 0,
                }],
                "allocate_capacity_for_each_vol": thick_volumes,
                # compression not allowed with thick volumes
                "noCompression": thick_volumes,
            }]
        return {
            "storageGroupId": storage_group_id,
            "srpId": srp_id,
            "emulation": EMULATION,
            "executionOption": EXECUTION_OPTION_SYNCHRONOUS,
            "sloBasedStorageGroupParam": slo_params,
        }

    @_timed
    def create_storage_group(self, symmetrix_id, storage_group_id, srp_id,
                             service_level, thick_volumes=False):
        """Create a storage group.

        :param srp_id: Storage resource pool of the group, or "None".
        :type srp_id: str
        :param service_level: Service level of the group, e.g. "Diamond".
        :type service_level: str
        :param thick_volumes: Allocate the full capacity of each volume.
        :type thick_volumes: bool, optional

        :returns: A dictionary describing the created storage group.
        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        payload = self.get_create_storage_group_payload(
            storage_group_id, srp_id, service_level, thick_volumes)
        storage_group = self._request(
            "POST", self._storage_group_path(symmetrix_id), payload)
        LOG.info("Successfully created SG: %s", storage_group_id)
        return storage_group

    @_timed
    def delete_storage_group(self, symmetrix_id, storage_group_id):
        self.is_allowed_array(symmetrix_id)
        try:
            self._request("DELETE", self._storage_group_path(
                symmetrix_id, storage_group_id))
        except PowerMaxError as err:
            LOG.error("delete_storage_group failed: %s", err)
            raise
        LOG.info("Successfully deleted SG: %s", storage_group_id)

    @_timed
    def update_storage_group(self, symmetrix_id, storage_group_id, payload,
                             headers=None):
        """Submit an asynchronous update of a storage group.

        :param payload: An update payload, e.g. from
                        :meth:`get_add_volumes_to_storage_group_payload`.
        :type payload: dict

        :returns: The job running the update. It is not waited on.
        :rtype: :class:`powermax.jobs.Job`

        """
        self.is_allowed_array(symmetrix_id)
        try:
            return self._jobs.submit(
                "PUT", self._storage_group_path(symmetrix_id,
                                                storage_group_id),
                payload, headers=headers)
        except PowerMaxError as err:
            LOG.error("Error in update_storage_group: %s", err)
            raise

    @_timed
    def update_storage_group_s(self, symmetrix_id, storage_group_id, payload,
                               headers=None):
        """Update a storage group synchronously.

        :returns: The response of Unisphere.
        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        payload = dict(payload)
        payload["executionOption"] = EXECUTION_OPTION_SYNCHRONOUS
        try:
            return self._request(
                "PUT", self._storage_group_path(symmetrix_id,
                                                storage_group_id),
                payload, headers=headers)
        except PowerMaxError as err:
            LOG.error("Error in update_storage_group_s: %s", err)
            raise

    @_timed
    def add_volumes_to_storage_group(self, symmetrix_id, storage_group_id,
                                     volume_ids, force=False, deadline=None):
        """Add volumes to a storage group and wait for the job to finish.

        :returns: The succeeded job.
        :rtype: :class:`powermax.jobs.Job`

        :raises: :class:`OperationFailedError` if the job failed.

        """
        self.is_allowed_array(symmetrix_id)
        if not volume_ids:
            raise ValueError("At least one volume id has to be specified")
        payload = self.get_add_volumes_to_storage_group_payload(
            volume_ids, force=force)
        return self._jobs.run(
            "PUT", self._storage_group_path(symmetrix_id, storage_group_id),
            payload, symmetrix_id, deadline=self._job_deadline(deadline),
            operation="update storage group")

    @_timed
    def add_volumes_to_storage_group_s(self, symmetrix_id, storage_group_id,
                                       volume_ids, force=False,
                                       remote_symmetrix_id=None,
                                       remote_storage_group_id=None):
        """Add volumes to a storage group synchronously.

        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        if not volume_ids:
            raise ValueError("At least one volume id has to be specified")
        payload = self.get_add_volumes_to_storage_group_payload(
            volume_ids, synchronous=True, force=force,
            remote_symmetrix_id=remote_symmetrix_id,
            remote_storage_group_id=remote_storage_group_id)
        return self.update_storage_group_s(symmetrix_id, storage_group_id,
                                           payload)

    @_timed
    def remove_volumes_from_storage_group(self, symmetrix_id,
                                          storage_group_id, volume_ids,
                                          force=False,
                                          remote_symmetrix_id=None,
                                          remote_storage_group_id=None):
        """Remove volumes from a storage group.

        :returns: A dictionary describing the updated storage group.
        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        if not volume_ids:
            raise ValueError("At least one volume id has to be specified")
        payload = self.get_remove_volumes_from_storage_group_payload(
            volume_ids, force, remote_symmetrix_id, remote_storage_group_id)
        storage_group = self.update_storage_group_s(
            symmetrix_id, storage_group_id, payload)
        LOG.info("Successfully removed volumes: [%s] from SG: %s",
                 " ".join(volume_ids), storage_group_id)
        return storage_group

    #
    # Storage pool methods
    #

    @_timed
    def get_storage_pool_list(self, symmetrix_id):
        self.is_allowed_array(symmetrix_id)
        return self._get_id_list(
            SLO_PROVISIONING.format(symmetrix_id) + "/srp", "srpId")

    @_timed
    def get_storage_pool(self, symmetrix_id, storage_pool_id):
        self.is_allowed_array(symmetrix_id)
        return self._request("GET", "{0}/srp/{1}".format(
            SLO_PROVISIONING.format(symmetrix_id), storage_pool_id))

    #
    # Masking view methods
    #

    def _masking_view_path(self, symmetrix_id, masking_view_id=None):
        path = SLO_PROVISIONING.format(symmetrix_id) + "/maskingview"
        if masking_view_id:
            path += "/" + masking_view_id
        return path

    @_timed
    def get_masking_view_list(self, symmetrix_id):
        self.is_allowed_array(symmetrix_id)
        return self._get_id_list(self._masking_view_path(symmetrix_id),
                                 "maskingViewId")

    @_timed
    def get_masking_view(self, symmetrix_id, masking_view_id):
        self.is_allowed_array(symmetrix_id)
        return self._request("GET", self._masking_view_path(
            symmetrix_id, masking_view_id))

    @_timed
    def get_masking_view_connections(self, symmetrix_id, masking_view_id,
                                     volume_id=None):
        """Get the connections of a masking view.

        :param volume_id: Only return the connections of this volume.
        :type volume_id: str, optional

        :rtype: ResponseList

        """
        self.is_allowed_array(symmetrix_id)
        params = {"volume_id": volume_id} if volume_id else None
        return self._get_id_list(
            self._masking_view_path(symmetrix_id, masking_view_id) +
            "/connections", "maskingViewConnection", params)

    @_timed
    def create_masking_view(self, symmetrix_id, masking_view_id,
                            storage_group_id, host_or_host_group_id, is_host,
                            port_group_id):
        """Create a masking view from existing groups.

        :param host_or_host_group_id: Id of the host, or host group, to
                                      mask the storage group to.
        :type host_or_host_group_id: str
        :param is_host: Whether host_or_host_group_id is a host.
        :type is_host: bool

        :returns: A dictionary describing the created masking view.
        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        if is_host:
            host_selection = {"useExistingHostParam": {
                "hostId": host_or_host_group_id}}
        else:
            host_selection = {"useExistingHostGroupParam": {
                "hostGroupId": host_or_host_group_id}}
        payload = {
            "maskingViewId": masking_view_id,
            "hostOrHostGroupSelection": host_selection,
            "portGroupSelection": {"useExistingPortGroupParam": {
                "portGroupId": port_group_id}},
            "storageGroupSelection": {"useExistingStorageGroupParam": {
                "storageGroupId": storage_group_id}},
        }
        masking_view = self._request(
            "POST", self._masking_view_path(symmetrix_id), payload)
        LOG.info("Successfully created Masking View: %s", masking_view_id)
        return masking_view

    @_timed
    def delete_masking_view(self, symmetrix_id, masking_view_id):
        self.is_allowed_array(symmetrix_id)
        self._request("DELETE", self._masking_view_path(symmetrix_id,
                                                        masking_view_id))
        LOG.info("Successfully deleted Masking View: %s", masking_view_id)

    #
    # Port group methods
    #

    def _port_group_path(self, symmetrix_id, port_group_id=None):
        path = SLO_PROVISIONING.format(symmetrix_id) + "/portgroup"
        if port_group_id:
            path += "/" + port_group_id
        return path

    @_timed
    def get_port_group_list(self, symmetrix_id, port_group_type=None):
        """List the ids of the port groups of an array.

        :param port_group_type: "fibre" or "iscsi" to only list port groups
                                of that type.
        :type port_group_type: str, optional

        :rtype: ResponseList

        """
        self.is_allowed_array(symmetrix_id)
        params = None
        if port_group_type and port_group_type.lower() in ("fibre", "iscsi"):
            params = {port_group_type.lower(): "true"}
        return self._get_id_list(self._port_group_path(symmetrix_id),
                                 "portGroupId", params)

    @_timed
    def get_port_group(self, symmetrix_id, port_group_id):
        self.is_allowed_array(symmetrix_id)
        return self._request("GET", self._port_group_path(symmetrix_id,
                                                          port_group_id))

    @_timed
    def create_port_group(self, symmetrix_id, port_group_id, ports,
                          protocol=None):
        """Create a port group.

        :param ports: Ports of the group, as dictionaries with "directorId"
                      and "portId" keys.
        :type ports: list of dict
        :param protocol: Protocol of the group, e.g. "SCSI_FC".
        :type protocol: str, optional

        :returns: A dictionary describing the created port group.
        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        payload = {
            "portGroupId": port_group_id,
            "symmetrixPortKey": list(ports),
            "executionOption": EXECUTION_OPTION_SYNCHRONOUS,
        }
        if protocol:
            payload["port_group_protocol"] = protocol
        port_group = self._request("POST", self._port_group_path(symmetrix_id),
                                   payload)
        LOG.info("Successfully created Port Group: %s", port_group_id)
        return port_group

    @_timed
    def delete_port_group(self, symmetrix_id, port_group_id):
        self.is_allowed_array(symmetrix_id)
        self._request("DELETE", self._port_group_path(symmetrix_id,
                                                      port_group_id))

    @staticmethod
    def _port_key(director_id, port_id):
        director_id = director_id.upper()
        port_id = port_id.lower()
        # The port id may be given as "<director>:<port>".
        match = _PORT_ID.search(port_id)
        if match:
            port_id = match.group(1)
        return director_id + "/" + port_id, {"directorId": director_id,
                                            "portId": port_id}

    @_timed
    def update_port_group(self, symmetrix_id, port_group_id, ports):
        """Make the ports of a port group equal to the given ones.

        Missing ports are added, then extra ports are removed, in two
        separate requests.

        :param ports: Wanted ports of the group, as dictionaries with
                      "directorId" and "portId" keys.
        :type ports: list of dict

        :returns: A dictionary describing the updated port group.
        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        wanted = {}
        for port in ports:
            key, value = self._port_key(port["directorId"], port["portId"])
            wanted.setdefault(key, value)
        port_group = self.get_port_group(symmetrix_id, port_group_id)
        current = {}
        for port in port_group.get("symmetrixPortKey", []):
            key, value = self._port_key(port["directorId"], port["portId"])
            current[key] = value

        path = self._port_group_path(symmetrix_id, port_group_id)
        added = [wanted[key] for key in sorted(wanted) if key not in current]
        removed = [current[key] for key in sorted(current)
                   if key not in wanted]
        if added:
            LOG.info("Adding ports %s to port group %s", added, port_group_id)
            port_group = self._request("PUT", path, {
                "editPortGroupActionParam": {"addPortParam": {"port": added}},
                "executionOption": EXECUTION_OPTION_SYNCHRONOUS})
        if removed:
            LOG.info("Removing ports %s from port group %s", removed,
                     port_group_id)
            port_group = self._request("PUT", path, {
                "editPortGroupActionParam": {
                    "removePortParam": {"port": removed}},
                "executionOption": EXECUTION_OPTION_SYNCHRONOUS})
        return port_group

    #
    # Initiator methods
    #

    @_timed
    def get_initiator_list(self, symmetrix_id, initiator_hba=None,
                           iscsi=False, in_host=False):
        """List the ids of the initiators of an array.

        :param initiator_hba: Only list initiators of this HBA.
        :type initiator_hba: str, optional
        :param iscsi: Only list iSCSI initiators.
        :type iscsi: bool, optional
        :param in_host: Only list initiators that belong to a host.
        :type in_host: bool, optional

        :rtype: ResponseList

        """
        self.is_allowed_array(symmetrix_id)
        params = {}
        if in_host:
            params["in_a_host"] = "true"
        if initiator_hba:
            params["initiator_hba"] = initiator_hba
        if iscsi:
            params["iscsi"] = "true"
        return self._get_id_list(
            SLO_PROVISIONING.format(symmetrix_id) + "/initiator",
            "initiatorId", params or None)

    @_timed
    def get_initiator(self, symmetrix_id, initiator_id):
        self.is_allowed_array(symmetrix_id)
        return self._request("GET", "{0}/initiator/{1}".format(
            SLO_PROVISIONING.format(symmetrix_id), initiator_id))

    #
    # Host methods
    #

    def _host_path(self, symmetrix_id, host_id=None):
        path = SLO_PROVISIONING.format(symmetrix_id) + "/host"
        if host_id:
            path += "/" + host_id
        return path

    @_timed
    def get_host_list(self, symmetrix_id):
        self.is_allowed_array(symmetrix_id)
        return self._get_id_list(self._host_path(symmetrix_id), "hostId")

    @_timed
    def get_host(self, symmetrix_id, host_id):
        self.is_allowed_array(symmetrix_id)
        return self._request("GET", self._host_path(symmetrix_id, host_id))

    @_timed
    def create_host(self, symmetrix_id, host_id, initiator_ids,
                    host_flags=None):
        """Create a host from initiators.

        :param initiator_ids: IQNs or FC WWNs of the initiators, without
                              port designations. An initiator may belong to
                              one host only.
        :type initiator_ids: list of str
        :param host_flags: Host flags, see the Unisphere REST API guide.
        :type host_flags: dict, optional

        :returns: A dictionary describing the created host.
        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        payload = {
            "hostId": host_id,
            "initiatorId": list(initiator_ids),
            "executionOption": EXECUTION_OPTION_SYNCHRONOUS,
        }
        if host_flags:
            payload["hostFlags"] = host_flags
        try:
            host = self._request("POST", self._host_path(symmetrix_id),
                                 payload)
        except PowerMaxError as err:
            LOG.error("create_host failed: %s", err)
            raise
        LOG.info("Successfully created Host: %s", host_id)
        return host

    @_timed
    def update_host_initiators(self, symmetrix_id, host, initiator_ids):
        """Make the initiators of a host equal to the given ones.

        :param host: The host, as returned by :meth:`get_host`.
        :type host: dict
        :param initiator_ids: Wanted initiators of the host.
        :type initiator_ids: list of str

        :returns: A dictionary describing the updated host.
        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        if host is None:
            raise ValueError("Host can't be None")
        current = host.get("initiator", [])
        added = [init for init in initiator_ids if init not in current]
        removed = [init for init in current if init not in initiator_ids]
        path = self._host_path(symmetrix_id, host["hostId"])
        updated = host
        if added:
            updated = self._request("PUT", path, {
                "editHostActionParam": {
                    "addInitiatorParam": {"initiator": added}},
                "executionOption": EXECUTION_OPTION_SYNCHRONOUS})
        if removed:
            updated = self._request("PUT", path, {
                "editHostActionParam": {
                    "removeInitiatorParam": {"initiator": removed}},
                "executionOption": EXECUTION_OPTION_SYNCHRONOUS})
        return updated

    @_timed
    def update_host_name(self, symmetrix_id, old_host_id, new_host_id):
        """Rename a host.

        :returns: A dictionary describing the renamed host.
        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        if not new_host_id:
            raise ValueError("new_host_id is empty")
        return self._request("PUT", self._host_path(symmetrix_id, old_host_id),
                             {"editHostActionParam": {
                                 "renameHostParam": {
                                     "new_host_name": new_host_id}},
                              "executionOption": EXECUTION_OPTION_SYNCHRONOUS})

    @_timed
    def delete_host(self, symmetrix_id, host_id):
        self.is_allowed_array(symmetrix_id)
        self._request("DELETE", self._host_path(symmetrix_id, host_id))
        LOG.info("Successfully deleted Host: %s", host_id)

    #
    # Director and port methods
    #

    def _director_path(self, symmetrix_id, director_id=None):
        path = "{0}/{1}/director".format(SYSTEM, symmetrix_id)
        if director_id:
            path += "/" + director_id
        return path

    @_timed
    def get_director_id_list(self, symmetrix_id):
        self.is_allowed_array(symmetrix_id)
        return self._get_id_list(self._director_path(symmetrix_id),
                                 "directorId")

    @_timed
    def get_port_list(self, symmetrix_id, director_id, params=None):
        """List the ports of a director.

        :param params: Query filters, see the Unisphere REST API guide.
        :type params: dict, optional

        :returns: The port keys, as dictionaries with "directorId" and
                  "portId" keys.
        :rtype: ResponseList

        """
        self.is_allowed_array(symmetrix_id)
        return self._get_id_list(
            self._director_path(symmetrix_id, director_id) + "/port",
            "symmetrixPortKey", params)

    @_timed
    def get_port(self, symmetrix_id, director_id, port_id):
        self.is_allowed_array(symmetrix_id)
        return self._request("GET", "{0}/port/{1}".format(
            self._director_path(symmetrix_id, director_id), port_id))

    @_timed
    def get_list_of_target_addresses(self, symmetrix_id):
        """Get the IP addresses of the iSCSI target ports of an array.

        :rtype: list of str

        """
        addresses = []
        for director_id in self.get_director_id_list(symmetrix_id):
            for key in self.get_port_list(symmetrix_id, director_id,
                                          {"iscsi_target": "true"}):
                port = self.get_port(symmetrix_id, director_id, key["portId"])
                addresses.extend(
                    port.get("symmetrixPort", {}).get("ip_addresses", []))
        return addresses

    #
    # Snapshot methods
    #

    def _replication_path(self, symmetrix_id, path):
        return self._private_path(REPLICATION.format(symmetrix_id) + path)

    @_timed
    def get_snap_volume_list(self, symmetrix_id, params=None):
        """List the volumes that are snapshot sources.

        :param params: Query filters, e.g. {"includeDetails": "true"}.
        :type params: dict, optional

        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        return self._request("GET", self._replication_path(symmetrix_id,
                                                           "/volume"),
                             params=params, versioned=False)

    @_timed
    def get_volume_snap_info(self, symmetrix_id, volume_id):
        """Get the snapshots of a volume and the snapshots linked to it.

        :rtype: ResponseDict

        """
        self.is_allowed_array(symmetrix_id)
        return self._request("GET", self._replication_path(
            symmetrix_id, "/volume/{0}/snapshot".format(volume_id)),
            versioned=False)

    @_timed
    def get_snapshot_info(self, symmetrix_id, volume_id, snapshot_id):
        self.is_allowed_array(symmetrix_id)
        return self._request("GET", self._replication_path(
            symmetrix_id, "/volume/{0}/snapshot/{1}".format(volume_id,
                                                           snapshot_id)),
            versioned=False)

    @_timed
    def get_snapshot_generations(self, symmetrix_id, volume_id, snapshot_id):
        self.is_allowed_array(symmetrix_id)
        return self._request("GET", self._replication_path(
            symmetrix_id, "/volume/{0}/snapshot/{1}/generation".format(
                volume_id, snapshot_id)), versioned=False)

    @_timed
    def get_snapshot_generation_info(self, symmetrix_id, volume_id,
                                     snapshot_id, generation):
        self.is_allowed_array(symmetrix_id)
        return self._request("GET", self._replication_path(
            symmetrix_id, "/volume/{0}/snapshot/{1}/generation/{2}".format(
                volume_id, snapshot_id, generation)), versioned=False)

    def _snapshot_path(self, symmetrix_id, snapshot_id):
        return self._format_path(
            self._replication_path(symmetrix_id,
                                   "/snapshot/{0}".format(snapshot_id)),
            versioned=False)

    @_timed
    def create_snapshot(self, symmetrix_id, snapshot_id, source_volume_ids,
                        ttl=0, deadline=None):
        """Snapshot volumes and wait for the job to finish.

        :param snapshot_id: Name of the snapshot.
        :type snapshot_id: str
        :param source_volume_ids: Volumes to snapshot.
        :type source_volume_ids: list of str
        :param ttl: Time to live of the snapshot in hours. 0 keeps it
                    until it is deleted.
        :type ttl: int, optional

        :returns: The succeeded job.
        :rtype: :class:`powermax.jobs.Job`

        """
        self.is_allowed_array(symmetrix_id)
        payload = {
            "deviceNameListSource": _volume_list(source_volume_ids),
            "bothSides": False,
            "star": False,
            "force": False,
        }
        if ttl > 0:
            payload["timeToLive"] = ttl
            payload["timeInHours"] = True
        job = self._jobs.run("POST", self._snapshot_path(symmetrix_id,
                                                         snapshot_id),
                             payload, symmetrix_id,
                             deadline=self._job_deadline(deadline),
                             operation="create snapshot")
        LOG.info("Successfully created snapshot: %s", snapshot_id)
        return job

    @_timed
    def modify_snapshot(self, symmetrix_id, source_volume_ids,
                        target_volume_ids, snapshot_id, action,
                        new_snapshot_id=None, generation=0, copy=False,
                        deadline=None):
        """Rename, link or unlink a snapshot and wait for the job to finish.

        :param target_volume_ids: Volumes to link to, or unlink from, the
                                  snapshot. Ignored when renaming.
        :type target_volume_ids: list of str
        :param action: One of "Rename", "Link" or "Unlink".
        :type action: str
        :param new_snapshot_id: New name of the snapshot, when renaming.
        :type new_snapshot_id: str, optional

        :returns: The succeeded job.
        :rtype: :class:`powermax.jobs.Job`

        """
        self.is_allowed_array(symmetrix_id)
        payload = {
            "deviceNameListSource": _volume_list(source_volume_ids),
            "action": action,
            "generation": generation,
            "star": False,
        }
        if action == "Rename":
            if not new_snapshot_id:
                raise ValueError("new_snapshot_id is required to rename")
            payload["deviceNameListTarget"] = _volume_list(source_volume_ids)
            payload["newsnapshotname"] = new_snapshot_id
        elif action in ("Link", "Unlink"):
            if len(source_volume_ids) != len(target_volume_ids):
                raise ValueError(
                    "The number of source and target volumes differ")
            payload["deviceNameListTarget"] = _volume_list(target_volume_ids)
            payload["copy"] = copy
            payload["force"] = False
            payload["remote"] = False
        else:
            raise ValueError("Unsupported snapshot action: {0}".format(action))
        return self._jobs.run("PUT", self._snapshot_path(symmetrix_id,
                                                         snapshot_id),
                              payload, symmetrix_id,
                              deadline=self._job_deadline(deadline),
                              operation=action.lower() + " snapshot")

    @_timed
    def delete_snapshot(self, symmetrix_id, snapshot_id, source_volume_ids,
                        generation=0, deadline=None):
        """Delete a snapshot generation and wait for the job to finish.

        :returns: The succeeded job.
        :rtype: :class:`powermax.jobs.Job`

        """
        self.is_allowed_array(symmetrix_id)
        payload = {
            "deviceNameListSource": _volume_list(source_volume_ids),
            "generation": generation,
        }
        job = self._jobs.run("DELETE", self._snapshot_path(symmetrix_id,
                                                           snapshot_id),
                             payload, symmetrix_id,
                             deadline=self._job_deadline(deadline),
                             operation="delete snapshot")
        LOG.info("Successfully deleted snapshot: %s", snapshot_id)
        return job
