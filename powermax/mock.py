"""
In-memory Unisphere for PowerMax.

:class:`MockUnisphere` is a :class:`requests.adapters.BaseAdapter` that serves
the REST resources used by :class:`powermax.PowerMax` from a
:class:`MockStore`. Mount it through the adapter argument of PowerMax to run
provisioning workflows without an array::

    unisphere = MockUnisphere()
    array = PowerMax("unisphere", "username", "password", adapter=unisphere)

Errors can be induced by setting the flags of :attr:`MockUnisphere.induced`.
"""

import base64
import copy
import http.client
import json
import logging
import re
import threading
import time
import uuid
from urllib.parse import parse_qs, urlsplit

import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from .jobs import (
    EXECUTION_OPTION_SYNCHRONOUS,
    JOB_STATUS_FAILED,
    JOB_STATUS_RUNNING,
    JOB_STATUS_SCHEDULED,
    JOB_STATUS_SUCCEEDED,
)

LOG = logging.getLogger(__name__)

DEFAULT_SYMMETRIX_ID = "000197900046"
DEFAULT_USERNAME = "username"
DEFAULT_PASSWORD = "password"
DEFAULT_PAGE_SIZE = 10
ITERATOR_LIFETIME = 180
UNISPHERE_VERSION = "V10.0.0.1"
SUPPORTED_VERSIONS = ("100", "92", "91", "90")

# A cylinder is 15 tracks of 128 KiB.
CYLINDER_MB = 1.875


class MockError(Exception):
    """An error answered to the client as an HTTP status and a message."""

    def __init__(self, status, message):
        self.status = status
        self.message = message
        super(MockError, self).__init__(message)


def _not_found(kind, name):
    return MockError(404, "Cannot find {0} {1}".format(kind, name))


class InducedErrors(object):

    """Faults the mock injects into its responses.

    :ivar bool no_connection: Fail every request before it reaches the server.
    :ivar bool invalid_json: Answer every request with a malformed JSON body.
    :ivar bool bad_http_status: Answer every request with status 500.
    :ivar bool get_job_error: Fail reads of a job.
    :ivar bool job_failed_error: Let newly submitted jobs end FAILED.
    :ivar bool get_volume_iterator_error: Fail volume listings.
    :ivar bool get_iterator_page_error: Fail iterator page reads.
    :ivar int iterator_count_inflation: Added to the count of new iterators.
    :ivar bool update_storage_group_error: Fail updates of storage groups.
    :ivar bool create_snapshot_error: Fail snapshot creation.
    :ivar float latency: Seconds every request takes. A request whose timeout
                         is shorter times out.

    """

    def __init__(self):
        self.reset()

    def reset(self):
        self.no_connection = False
        self.invalid_json = False
        self.bad_http_status = False
        self.get_job_error = False
        self.job_failed_error = False
        self.get_volume_iterator_error = False
        self.get_iterator_page_error = False
        self.iterator_count_inflation = 0
        self.update_storage_group_error = False
        self.create_snapshot_error = False
        self.latency = 0


class MockJob(object):

    """A job whose status advances each time it is read.

    The job is SCHEDULED when submitted and RUNNING for the first polls
    reads. It then reports its final status, and if oscillate is set,
    alternates between RUNNING and the final status on every later read.

    """

    def __init__(self, job_id, resource_link, final_status=JOB_STATUS_SUCCEEDED,
                 polls=1, oscillate=True, name=None):
        self.job_id = job_id
        self.resource_link = resource_link
        self.final_status = final_status
        self.polls = polls
        self.oscillate = oscillate
        self.name = name or "Mock job"
        self.reads = 0
        self.status = JOB_STATUS_SCHEDULED

    def advance(self):
        self.reads += 1
        if self.reads <= self.polls:
            self.status = JOB_STATUS_RUNNING
        elif self.oscillate and (self.reads - self.polls) % 2 == 0:
            self.status = JOB_STATUS_RUNNING
        else:
            self.status = self.final_status

    def render(self):
        if self.status == JOB_STATUS_SUCCEEDED:
            result = "Mock job completed"
        elif self.status == JOB_STATUS_FAILED:
            result = "Mock job failed"
        else:
            result = "Mock job in-progress"
        job = {
            "jobId": self.job_id,
            "name": self.name,
            "status": self.status,
            "username": DEFAULT_USERNAME,
            "last_modified_date": time.strftime("%b-%d-%Y %H:%M:%S"),
            "resourceLink": self.resource_link,
            "result": result,
        }
        if self.status in (JOB_STATUS_SUCCEEDED, JOB_STATUS_FAILED):
            job["completed_date"] = job["last_modified_date"]
        return job


def _cap_gb(cylinders):
    return round(cylinders * CYLINDER_MB / 1024, 2)


class MockStore(object):

    """The resources of one mock array.

    Resources are kept in the minimal form needed to answer requests.
    Counters and back references are computed when a resource is rendered.

    :param symmetrix_id: Id of the array.
    :type symmetrix_id: str

    :ivar int job_polls: Reads for which new jobs report RUNNING before
                         reaching their final status.
    :ivar bool job_oscillate: Let new jobs alternate between RUNNING and
                              their final status once they have reached it.

    """

    def __init__(self, symmetrix_id=DEFAULT_SYMMETRIX_ID):
        self.symmetrix_id = symmetrix_id
        self.volumes = {}
        self.storage_groups = {}
        self.masking_views = {}
        self.port_groups = {}
        self.hosts = {}
        self.initiators = {}
        self.ports = {}
        self.srps = {}
        self.jobs = {}
        self.iterators = {}
        self.snapshots = {}
        self.job_polls = 1
        self.job_oscillate = True
        self._next_volume = 1
        self.seed()

    #
    # Fixture
    #

    def seed(self):
        """Populate the array with the default test resources."""
        for srp_id, usable in (("SRP_1", 10240.0), ("SRP_2", 20480.0)):
            self.srps[srp_id] = {
                "srpId": srp_id,
                "total_usable_cap_gb": usable,
                "total_allocated_cap_gb": 0.0,
                "total_subscribed_cap_gb": 0.0,
                "emulation": "FBA",
                "reserved_cap_percent": 10,
            }

        for director_id, port_id in (("FA-1D", "4"), ("FA-1D", "5"),
                                     ("FA-2D", "1"), ("FA-2D", "5")):
            self.add_port(director_id, port_id, "FibreChannel",
                          "5000097300%06x" % len(self.ports))
        self.add_port("SE-1E", "0", "GigE", "iqn.1992-04.com.emc:600009700bcbb70e3287017400000000",
                      ip_addresses=["192.168.1.1"])
        self.add_port("SE-2E", "0", "GigE", "iqn.1992-04.com.emc:600009700bcbb70e3287017400000001",
                      ip_addresses=["192.168.1.2"])

        self.add_port_group("csi-pg", [("FA-1D", "5"), ("FA-2D", "1")])
        self.add_port_group("iscsi_ports", [("SE-1E", "0"), ("SE-2E", "0")])

        self.add_initiator("SE-1E", "0",
                           "iqn.1993-08.org.centos:01:5ae577b352a0")
        self.add_initiator("SE-2E", "0",
                           "iqn.1993-08.org.centos:01:5ae577b352a1")
        self.add_initiator("SE-1E", "0",
                           "iqn.1993-08.org.centos:01:5ae577b352a2")
        self.add_initiator("FA-1D", "4", "5000000000000001")
        self.add_initiator("FA-2D", "1", "5000000000000002")

        self.add_host("CSI-Test-Node-1",
                      ["iqn.1993-08.org.centos:01:5ae577b352a0"])
        self.add_host("CSI-Test-Node-2",
                      ["iqn.1993-08.org.centos:01:5ae577b352a1"])
        self.add_host("CSI-Test-Node-3-FC", ["5000000000000001"])

        for index, (srp, slo) in enumerate((("SRP_1", "Diamond"),
                                            ("SRP_1", "Diamond"),
                                            ("SRP_2", "Silver"),
                                            ("SRP_2", "Optimized"),
                                            ("SRP_2", "None"),
                                            ("None", "None")), start=1):
            self.add_storage_group("CSI-Test-SG-{0}".format(index), srp, slo)

        self.add_volume("CSI-Test-Vol-1", 7, ["CSI-Test-SG-1"])
        self.add_volume("CSI-Test-Vol-2", 7, ["CSI-Test-SG-1"])

        self.masking_views["CSI-Test-MV-1"] = {
            "maskingViewId": "CSI-Test-MV-1",
            "hostId": "CSI-Test-Node-1",
            "portGroupId": "iscsi_ports",
            "storageGroupId": "CSI-Test-SG-1",
        }

        self.add_snapshot("00001", "DEL-snapshot-1")
        self.add_snapshot("00002", "DEL-snapshot-2")

    def add_port(self, director_id, port_id, port_type, identifier,
                 ip_addresses=None):
        self.ports[(director_id, port_id)] = {
            "type": port_type,
            "identifier": identifier,
            "ip_addresses": list(ip_addresses or []),
        }

    def add_port_group(self, port_group_id, ports, protocol=None):
        port_type = "iSCSI" if all(
            self.ports[port]["type"] == "GigE" for port in ports) else "Fibre"
        self.port_groups[port_group_id] = {
            "portGroupId": port_group_id,
            "symmetrixPortKey": [{"directorId": director_id,
                                  "portId": port_id}
                                 for director_id, port_id in ports],
            "type": port_type,
            "port_group_protocol": protocol or (
                "iSCSI" if port_type == "iSCSI" else "SCSI_FC"),
        }

    def add_initiator(self, director_id, port_id, hba):
        iscsi = hba.startswith("iqn.")
        if iscsi:
            initiator_id = "{0}:{1:0>3}:{2}".format(director_id, port_id, hba)
        else:
            initiator_id = "{0}:{1}:{2}".format(director_id, port_id, hba)
        self.initiators[initiator_id] = {
            "initiatorId": initiator_id,
            "hba": hba,
            "symmetrixPortKey": [{"directorId": director_id,
                                  "portId": port_id}],
            "type": "ISCSI" if iscsi else "FIBRE",
        }
        return initiator_id

    def add_host(self, host_id, hbas):
        self.hosts[host_id] = {
            "hostId": host_id,
            "initiator": list(hbas),
        }

    def add_storage_group(self, storage_group_id, srp_id="SRP_1",
                          service_level="Diamond"):
        self.storage_groups[storage_group_id] = {
            "storageGroupId": storage_group_id,
            "srp": srp_id,
            "slo": service_level,
            "workload": "None",
        }

    def add_volume(self, volume_identifier, cylinders, storage_group_ids=()):
        """Create a volume and return its id."""
        volume_id = "%05X" % self._next_volume
        self._next_volume += 1
        self.volumes[volume_id] = {
            "volumeId": volume_id,
            "volume_identifier": volume_identifier,
            "cap_cyl": cylinders,
            "storageGroupId": list(storage_group_ids),
            "wwn": "60000970000197900046533030%s" % volume_id,
            "allocated": True,
        }
        return volume_id

    def add_snapshot(self, volume_id, snapshot_id, ttl=0):
        generations = self.snapshots.setdefault(volume_id, {}).setdefault(
            snapshot_id, [])
        generations.insert(0, {
            "timestamp": time.strftime("%a %b %d %H:%M:%S %Y"),
            "timeToLive": ttl,
            "linkedDevices": [],
        })

    #
    # Lookups
    #

    def volume(self, volume_id):
        try:
            return self.volumes[volume_id]
        except KeyError:
            raise _not_found("Volume", volume_id)

    def storage_group(self, storage_group_id):
        try:
            return self.storage_groups[storage_group_id]
        except KeyError:
            raise _not_found("Storage Group", storage_group_id)

    def masking_view(self, masking_view_id):
        try:
            return self.masking_views[masking_view_id]
        except KeyError:
            raise _not_found("Masking View", masking_view_id)

    def port_group(self, port_group_id):
        try:
            return self.port_groups[port_group_id]
        except KeyError:
            raise _not_found("Port Group", port_group_id)

    def host(self, host_id):
        try:
            return self.hosts[host_id]
        except KeyError:
            raise _not_found("Host", host_id)

    def initiator(self, initiator_id):
        try:
            return self.initiators[initiator_id]
        except KeyError:
            raise _not_found("Initiator", initiator_id)

    def initiator_by_hba(self, hba):
        for initiator in self.initiators.values():
            if initiator["hba"] == hba:
                return initiator
        raise _not_found("Initiator", hba)

    def host_of(self, hba):
        for host in self.hosts.values():
            if hba in host["initiator"]:
                return host["hostId"]
        return None

    def port(self, director_id, port_id):
        try:
            return self.ports[(director_id, port_id)]
        except KeyError:
            raise _not_found("Port", "{0}:{1}".format(director_id, port_id))

    def generations(self, volume_id, snapshot_id):
        try:
            return self.snapshots[volume_id][snapshot_id]
        except KeyError:
            raise _not_found("Snapshot", "{0} on volume {1}".format(
                snapshot_id, volume_id))

    def links_to(self, target_id):
        links = []
        for volume_id, snapshots in sorted(self.snapshots.items()):
            for snapshot_id, generations in sorted(snapshots.items()):
                for generation in generations:
                    if target_id in generation["linkedDevices"]:
                        links.append((volume_id, snapshot_id))
        return links

    def views_of(self, key, value):
        return sorted(view_id for view_id, view in self.masking_views.items()
                      if view.get(key) == value)

    def volumes_in(self, storage_group_id):
        return sorted(volume_id for volume_id, volume in self.volumes.items()
                      if storage_group_id in volume["storageGroupId"])

    #
    # Rendering
    #

    def render_volume(self, volume_id):
        volume = self.volume(volume_id)
        storage_groups = list(volume["storageGroupId"])
        paths = sum(len(self.views_of("storageGroupId", sg))
                    for sg in storage_groups)
        return {
            "volumeId": volume_id,
            "type": "TDEV",
            "emulation": "FBA",
            "ssid": "FFFFFFFF",
            "allocated_percent": 100 if volume["allocated"] else 0,
            "cap_gb": _cap_gb(volume["cap_cyl"]),
            "cap_mb": round(volume["cap_cyl"] * CYLINDER_MB, 2),
            "cap_cyl": volume["cap_cyl"],
            "status": "Ready",
            "reserved": False,
            "pinned": False,
            "volume_identifier": volume["volume_identifier"],
            "wwn": volume["wwn"],
            "encapsulated": False,
            "num_of_storage_groups": len(storage_groups),
            "num_of_front_end_paths": paths,
            "storageGroupId": storage_groups,
            "snapvx_source": bool(self.snapshots.get(volume_id)),
            "snapvx_target": bool(self.links_to(volume_id)),
        }

    def render_storage_group(self, storage_group_id):
        storage_group = self.storage_group(storage_group_id)
        volume_ids = self.volumes_in(storage_group_id)
        views = self.views_of("storageGroupId", storage_group_id)
        rendered = dict(storage_group)
        rendered.update({
            "slo_compliance": "NONE" if storage_group["slo"] == "None"
            else "STABLE",
            "num_of_vols": len(volume_ids),
            "num_of_child_sgs": 0,
            "num_of_parent_sgs": 0,
            "num_of_masking_views": len(views),
            "num_of_snapshots": 0,
            "cap_gb": round(sum(_cap_gb(self.volumes[v]["cap_cyl"])
                                for v in volume_ids), 2),
            "device_emulation": "FBA",
            "type": "Standalone",
            "unprotected": True,
            "maskingview": views,
        })
        return rendered

    def render_masking_view(self, masking_view_id):
        return dict(self.masking_view(masking_view_id))

    def render_port_group(self, port_group_id):
        rendered = copy.deepcopy(self.port_group(port_group_id))
        rendered["num_of_ports"] = len(rendered["symmetrixPortKey"])
        rendered["num_of_masking_views"] = len(
            self.views_of("portGroupId", port_group_id))
        rendered["maskingview"] = self.views_of("portGroupId", port_group_id)
        return rendered

    def render_host(self, host_id):
        host = self.host(host_id)
        views = self.views_of("hostId", host_id)
        types = set(self.initiator_by_hba(hba)["type"]
                    for hba in host["initiator"])
        return {
            "hostId": host_id,
            "num_of_masking_views": len(views),
            "num_of_initiators": len(host["initiator"]),
            "num_of_host_groups": 0,
            "port_flags_override": False,
            "consistent_lun": False,
            "type": "iSCSI" if types == set(["ISCSI"]) else "Fibre",
            "initiator": list(host["initiator"]),
            "maskingview": views,
            "num_of_powerpath_hosts": 0,
        }

    def render_initiator(self, initiator_id):
        initiator = self.initiator(initiator_id)
        rendered = {
            "initiatorId": initiator["hba"],
            "symmetrixPortKey": copy.deepcopy(initiator["symmetrixPortKey"]),
            "type": initiator["type"],
            "logged_in": True,
            "on_fabric": True,
        }
        host_id = self.host_of(initiator["hba"])
        if host_id:
            rendered["host"] = host_id
            rendered["maskingview"] = self.views_of("hostId", host_id)
        return rendered

    def render_port(self, director_id, port_id):
        port = self.port(director_id, port_id)
        rendered = {
            "symmetrixPortKey": {"directorId": director_id,
                                 "portId": port_id},
            "type": port["type"],
            "identifier": port["identifier"],
            "port_status": "ON",
        }
        if port["ip_addresses"]:
            rendered["ip_addresses"] = list(port["ip_addresses"])
        return {"symmetrixPort": rendered}

    #
    # Jobs and iterators
    #

    def new_job(self, resource_link, failed=False, name=None):
        job = MockJob(str(uuid.uuid4().int)[:13], resource_link,
                      JOB_STATUS_FAILED if failed else JOB_STATUS_SUCCEEDED,
                      polls=self.job_polls, oscillate=self.job_oscillate,
                      name=name)
        self.jobs[job.job_id] = job
        return job

    def new_iterator(self, elements, page_size, count_inflation=0):
        """Return the listing response of an iterator over elements."""
        count = len(elements) + count_inflation
        last = min(len(elements), page_size)
        response = {
            "count": count,
            "maxPageSize": page_size,
            "expirationTime": int((time.time() + ITERATOR_LIFETIME) * 1000),
            "resultList": {"result": elements[:last], "from": 1,
                           "to": last},
        }
        if count > page_size:
            iterator_id = "{0}_0".format(uuid.uuid4())
            self.iterators[iterator_id] = {"elements": list(elements),
                                           "count": count}
            response["id"] = iterator_id
        return response


class MockUnisphere(BaseAdapter):

    """A transport adapter answering Unisphere REST requests from memory.

    :param symmetrix_id: Id of the single array served.
    :type symmetrix_id: str, optional
    :param username: Username accepted by the server.
    :param password: Password accepted by the server.
    :param page_size: Number of results per iterator page.
    :type page_size: int, optional

    :ivar store: The resources served, a :class:`MockStore`.
    :ivar induced: The faults to inject, an :class:`InducedErrors`.
    :ivar list calls: The (method, path) of every request received, path
                      being relative to /univmax/restapi.

    """

    def __init__(self, symmetrix_id=DEFAULT_SYMMETRIX_ID,
                 username=DEFAULT_USERNAME, password=DEFAULT_PASSWORD,
                 page_size=DEFAULT_PAGE_SIZE):
        super(MockUnisphere, self).__init__()
        self.symmetrix_id = symmetrix_id
        self.page_size = page_size
        self._credentials = "{0}:{1}".format(username, password)
        self.store = MockStore(symmetrix_id)
        self.induced = InducedErrors()
        self.calls = []
        self._lock = threading.Lock()
        self._routes = self._build_routes()

    def reset(self):
        """Restore the default fixture and clear induced errors and calls."""
        with self._lock:
            self.store = MockStore(self.symmetrix_id)
            self.induced.reset()
            self.calls = []

    def _build_routes(self):
        versioned = r"^(?P<version>\d+)/"
        private = r"^private/(?P<version>\d+)/replication/symmetrix/(?P<sym>\w+)"
        system = versioned + r"system/symmetrix"
        slo = versioned + r"sloprovisioning/symmetrix/(?P<sym>\w+)"
        routes = [
            ("GET", versioned + r"system/version$", self.get_version),
            ("GET", system + r"$", self.list_symmetrix),
            ("GET", system + r"/(?P<sym>\w+)$", self.get_symmetrix),
            ("GET", system + r"/(?P<sym>\w+)/job$", self.list_jobs),
            ("GET", system + r"/(?P<sym>\w+)/job/(?P<job>[^/]+)$",
             self.get_job),
            ("GET", system + r"/(?P<sym>\w+)/director$", self.list_directors),
            ("GET", system + r"/(?P<sym>\w+)/director/(?P<director>[^/]+)/port$",
             self.list_ports),
            ("GET", system + r"/(?P<sym>\w+)/director/(?P<director>[^/]+)"
             r"/port/(?P<port>[^/]+)$", self.get_port),
            ("GET", slo + r"/volume$", self.list_volumes),
            ("GET", slo + r"/volume/(?P<volume>\w+)$", self.get_volume),
            ("PUT", slo + r"/volume/(?P<volume>\w+)$", self.edit_volume),
            ("DELETE", slo + r"/volume/(?P<volume>\w+)$", self.delete_volume),
            ("GET", slo + r"/storagegroup$", self.list_storage_groups),
            ("POST", slo + r"/storagegroup$", self.create_storage_group),
            ("GET", slo + r"/storagegroup/(?P<sg>[^/]+)$",
             self.get_storage_group),
            ("PUT", slo + r"/storagegroup/(?P<sg>[^/]+)$",
             self.edit_storage_group),
            ("DELETE", slo + r"/storagegroup/(?P<sg>[^/]+)$",
             self.delete_storage_group),
            ("GET", slo + r"/srp$", self.list_srps),
            ("GET", slo + r"/srp/(?P<srp>[^/]+)$", self.get_srp),
            ("GET", slo + r"/maskingview$", self.list_masking_views),
            ("POST", slo + r"/maskingview$", self.create_masking_view),
            ("GET", slo + r"/maskingview/(?P<mv>[^/]+)$",
             self.get_masking_view),
            ("DELETE", slo + r"/maskingview/(?P<mv>[^/]+)$",
             self.delete_masking_view),
            ("GET", slo + r"/maskingview/(?P<mv>[^/]+)/connections$",
             self.get_masking_view_connections),
            ("GET", slo + r"/portgroup$", self.list_port_groups),
            ("POST", slo + r"/portgroup$", self.create_port_group),
            ("GET", slo + r"/portgroup/(?P<pg>[^/]+)$", self.get_port_group),
            ("PUT", slo + r"/portgroup/(?P<pg>[^/]+)$", self.edit_port_group),
            ("DELETE", slo + r"/portgroup/(?P<pg>[^/]+)$",
             self.delete_port_group),
            ("GET", slo + r"/initiator$", self.list_initiators),
            ("GET", slo + r"/initiator/(?P<initiator>[^/]+)$",
             self.get_initiator),
            ("GET", slo + r"/host$", self.list_hosts),
            ("POST", slo + r"/host$", self.create_host),
            ("GET", slo + r"/host/(?P<host>[^/]+)$", self.get_host),
            ("PUT", slo + r"/host/(?P<host>[^/]+)$", self.edit_host),
            ("DELETE", slo + r"/host/(?P<host>[^/]+)$", self.delete_host),
            ("GET", r"^common/Iterator/(?P<iterator>[^/]+)/page$",
             self.get_iterator_page),
            ("DELETE", r"^common/Iterator/(?P<iterator>[^/]+)$",
             self.delete_iterator),
            ("GET", private + r"/volume$", self.list_snap_volumes),
            ("GET", private + r"/volume/(?P<volume>\w+)/snapshot$",
             self.get_volume_snapshots),
            ("GET", private + r"/volume/(?P<volume>\w+)/snapshot/(?P<snap>[^/]+)$",
             self.get_snapshot),
            ("GET", private + r"/volume/(?P<volume>\w+)/snapshot/(?P<snap>[^/]+)"
             r"/generation$", self.get_snapshot_generations),
            ("GET", private + r"/volume/(?P<volume>\w+)/snapshot/(?P<snap>[^/]+)"
             r"/generation/(?P<gen>\d+)$", self.get_snapshot_generation),
            ("POST", private + r"/snapshot/(?P<snap>[^/]+)$",
             self.create_snapshot),
            ("PUT", private + r"/snapshot/(?P<snap>[^/]+)$",
             self.modify_snapshot),
            ("DELETE", private + r"/snapshot/(?P<snap>[^/]+)$",
             self.delete_snapshot),
        ]
        return [(method, re.compile(pattern), handler)
                for method, pattern, handler in routes]

    #
    # Transport
    #

    def send(self, request, stream=False, timeout=None, verify=True,
             cert=None, proxies=None):
        if self.induced.no_connection:
            raise requests.exceptions.ConnectionError(
                "Induced error: no connection to Unisphere", request=request)
        self._delay(request, timeout)

        url = urlsplit(request.url)
        path = url.path.split("/univmax/restapi/", 1)[-1]
        query = dict((key, values[-1]) for key, values in
                     parse_qs(url.query).items())
        with self._lock:
            self.calls.append((request.method, path))
            try:
                status, body = self._dispatch(request, path, query)
            except MockError as err:
                status, body = err.status, {"message": err.message}
        LOG.debug("%s %s answered %s", request.method, path, status)
        return self._build_response(request, status, body)

    def close(self):
        pass

    def _delay(self, request, timeout):
        latency = self.induced.latency
        if not latency:
            return
        if isinstance(timeout, tuple):
            timeout = timeout[1]
        if timeout is not None and timeout < latency:
            time.sleep(timeout)
            raise requests.exceptions.ReadTimeout(
                "Induced latency exceeds timeout", request=request)
        time.sleep(latency)

    def _build_response(self, request, status, body):
        response = requests.Response()
        response.status_code = status
        response.reason = http.client.responses.get(status, "Unknown")
        response.url = request.url
        response.request = request
        response.encoding = "utf-8"
        response.headers = CaseInsensitiveDict()
        if self.induced.invalid_json:
            response.headers["Content-Type"] = "application/json"
            response._content = b"{invalid json"
        elif body is None:
            response._content = b""
        else:
            response.headers["Content-Type"] = "application/json"
            response._content = json.dumps(body).encode("utf-8")
        return response

    def _check_auth(self, request):
        expected = "Basic " + base64.b64encode(
            self._credentials.encode("utf-8")).decode("ascii")
        if request.headers.get("Authorization") != expected:
            raise MockError(401, "Unauthorized")

    def _dispatch(self, request, path, query):
        self._check_auth(request)
        if self.induced.bad_http_status:
            raise MockError(500, "Induced error: bad HTTP status")
        allowed = []
        for method, pattern, handler in self._routes:
            match = pattern.match(path)
            if not match:
                continue
            if method != request.method:
                allowed.append(method)
                continue
            params = match.groupdict()
            version = params.pop("version", None)
            if version is not None and version not in SUPPORTED_VERSIONS:
                raise MockError(503, "Unsupported REST version {0}".format(
                    version))
            symmetrix_id = params.pop("sym", None)
            if symmetrix_id is not None and \
                    symmetrix_id != self.store.symmetrix_id:
                raise _not_found("Symmetrix", symmetrix_id)
            payload = None
            if request.body:
                body = request.body
                if isinstance(body, bytes):
                    body = body.decode("utf-8")
                try:
                    payload = json.loads(body)
                except ValueError:
                    raise MockError(400, "Request body is not JSON")
            try:
                return handler(query=query, payload=payload or {}, **params)
            except (KeyError, TypeError, ValueError) as err:
                raise MockError(400, "Malformed request: {0!r}".format(err))
        if allowed:
            raise MockError(405, "Method {0} not allowed".format(
                request.method))
        raise MockError(404, "No resource at {0}".format(path))

    def _mutated(self, payload, resource_link, resource, name=None,
                 failed=False):
        """Answer a mutation synchronously or with a job."""
        if payload.get("executionOption") == EXECUTION_OPTION_SYNCHRONOUS:
            return 200, resource
        job = self.store.new_job(
            "/univmax/restapi/" + resource_link,
            failed=failed or self.induced.job_failed_error, name=name)
        return 202, job.render()

    def _link(self, kind, name):
        return "{0}/sloprovisioning/symmetrix/{1}/{2}/{3}".format(
            SUPPORTED_VERSIONS[0], self.store.symmetrix_id, kind, name)

    #
    # System
    #

    def get_version(self, query, payload):
        return 200, {"version": UNISPHERE_VERSION}

    def list_symmetrix(self, query, payload):
        return 200, {"symmetrixId": [self.store.symmetrix_id]}

    def get_symmetrix(self, query, payload):
        return 200, {"symmetrixId": self.store.symmetrix_id,
                     "model": "PowerMax_2000",
                     "ucode": "5978.479.479",
                     "local": True}

    def list_jobs(self, query, payload):
        status = query.get("status")
        return 200, {"jobId": sorted(
            job_id for job_id, job in self.store.jobs.items()
            if status is None or job.status == status.upper())}

    def get_job(self, query, payload, job):
        if self.induced.get_job_error:
            raise MockError(500, "Induced error: get job")
        try:
            mock_job = self.store.jobs[job]
        except KeyError:
            raise _not_found("Job", job)
        mock_job.advance()
        return 200, mock_job.render()

    def list_directors(self, query, payload):
        return 200, {"directorId": sorted(set(
            director_id for director_id, _ in self.store.ports))}

    def list_ports(self, query, payload, director):
        keys = []
        for director_id, port_id in sorted(self.store.ports):
            if director_id != director:
                continue
            port = self.store.ports[(director_id, port_id)]
            if query.get("iscsi_target") == "true" and port["type"] != "GigE":
                continue
            keys.append({"directorId": director_id, "portId": port_id})
        if not keys and director not in set(d for d, _ in self.store.ports):
            raise _not_found("Director", director)
        return 200, {"symmetrixPortKey": keys}

    def get_port(self, query, payload, director, port):
        return 200, self.store.render_port(director, port)

    #
    # Volumes
    #

    def list_volumes(self, query, payload):
        if self.induced.get_volume_iterator_error:
            raise MockError(500, "Induced error: get volume iterator")
        volume_ids = sorted(self.store.volumes)
        identifier = query.get("volume_identifier")
        if identifier is not None:
            if identifier.startswith("<like>"):
                identifier = identifier[len("<like>"):]
                volume_ids = [v for v in volume_ids if identifier in
                              self.store.volumes[v]["volume_identifier"]]
            else:
                volume_ids = [v for v in volume_ids if identifier ==
                              self.store.volumes[v]["volume_identifier"]]
        storage_group_id = query.get("storageGroupId")
        if storage_group_id is not None:
            self.store.storage_group(storage_group_id)
            volume_ids = [v for v in volume_ids if storage_group_id in
                          self.store.volumes[v]["storageGroupId"]]
        elements = [{"volumeId": v} for v in volume_ids]
        return 200, self.store.new_iterator(
            elements, self.page_size, self.induced.iterator_count_inflation)

    def get_volume(self, query, payload, volume):
        return 200, self.store.render_volume(volume)

    def edit_volume(self, query, payload, volume):
        record = self.store.volume(volume)
        action = payload.get("editVolumeActionParam", {})
        if "expandVolumeParam" in action:
            attribute = action["expandVolumeParam"]["volumeAttribute"]
            size = int(attribute["volume_size"])
            if size <= record["cap_cyl"]:
                raise MockError(400, "New size must exceed {0} cylinders"
                                .format(record["cap_cyl"]))
            record["cap_cyl"] = size
        elif "modifyVolumeIdentifierParam" in action:
            identifier = action["modifyVolumeIdentifierParam"][
                "volumeIdentifier"]
            record["volume_identifier"] = identifier.get("identifier_name", "")
        elif "freeVolumeParam" in action:
            record["allocated"] = False
        else:
            raise MockError(400, "Unsupported volume action")
        return self._mutated(payload, self._link("volume", volume),
                             self.store.render_volume(volume),
                             name="Modify Volume " + volume)

    def delete_volume(self, query, payload, volume):
        record = self.store.volume(volume)
        if record["storageGroupId"]:
            raise MockError(400, "Volume {0} is in storage groups {1}".format(
                volume, ", ".join(record["storageGroupId"])))
        if self.store.snapshots.get(volume) or self.store.links_to(volume):
            raise MockError(400, "Volume {0} has snapshots".format(volume))
        del self.store.volumes[volume]
        return 204, None

    #
    # Storage groups and pools
    #

    def list_storage_groups(self, query, payload):
        return 200, {"storageGroupId": sorted(self.store.storage_groups)}

    def get_storage_group(self, query, payload, sg):
        return 200, self.store.render_storage_group(sg)

    def create_storage_group(self, query, payload):
        storage_group_id = payload.get("storageGroupId")
        if not storage_group_id:
            raise MockError(400, "storageGroupId is required")
        if storage_group_id in self.store.storage_groups:
            raise MockError(409, "Storage Group {0} already exists".format(
                storage_group_id))
        srp_id = payload.get("srpId", "None")
        if srp_id != "None" and srp_id not in self.store.srps:
            raise _not_found("SRP", srp_id)
        service_level = "None"
        for param in payload.get("sloBasedStorageGroupParam", []):
            service_level = param.get("sloId", "None")
        self.store.add_storage_group(storage_group_id, srp_id, service_level)
        return 201, self.store.render_storage_group(storage_group_id)

    def edit_storage_group(self, query, payload, sg):
        self.store.storage_group(sg)
        if self.induced.update_storage_group_error:
            raise MockError(500, "Induced error: update storage group")
        action = payload.get("editStorageGroupActionParam", {})
        expand = action.get("expandStorageGroupParam", {})
        if "addVolumeParam" in expand:
            for attributes in expand["addVolumeParam"]["volumeAttributes"]:
                identifier = attributes.get("volumeIdentifier", {})
                size = int(attributes["volume_size"])
                for _ in range(int(attributes.get("num_of_vols", 1))):
                    self.store.add_volume(
                        identifier.get("identifier_name", ""), size, [sg])
        elif "addSpecificVolumeParam" in expand:
            volume_ids = expand["addSpecificVolumeParam"]["volumeId"]
            for volume_id in volume_ids:
                self.store.volume(volume_id)
            for volume_id in volume_ids:
                storage_groups = self.store.volumes[volume_id]["storageGroupId"]
                if sg not in storage_groups:
                    storage_groups.append(sg)
        elif "removeVolumeParam" in action:
            volume_ids = action["removeVolumeParam"]["volumeId"]
            for volume_id in volume_ids:
                if sg not in self.store.volume(volume_id)["storageGroupId"]:
                    raise MockError(400, "Volume {0} is not in {1}".format(
                        volume_id, sg))
            for volume_id in volume_ids:
                self.store.volumes[volume_id]["storageGroupId"].remove(sg)
        else:
            raise MockError(400, "Unsupported storage group action")
        return self._mutated(payload, self._link("storagegroup", sg),
                             self.store.render_storage_group(sg),
                             name="Modify Storage Group " + sg)

    def delete_storage_group(self, query, payload, sg):
        self.store.storage_group(sg)
        if self.store.views_of("storageGroupId", sg):
            raise MockError(400, "Storage Group {0} is in a masking view"
                            .format(sg))
        for volume_id in self.store.volumes_in(sg):
            self.store.volumes[volume_id]["storageGroupId"].remove(sg)
        del self.store.storage_groups[sg]
        return 204, None

    def list_srps(self, query, payload):
        return 200, {"srpId": sorted(self.store.srps)}

    def get_srp(self, query, payload, srp):
        try:
            return 200, dict(self.store.srps[srp])
        except KeyError:
            raise _not_found("SRP", srp)

    #
    # Masking views
    #

    def list_masking_views(self, query, payload):
        return 200, {"maskingViewId": sorted(self.store.masking_views)}

    def get_masking_view(self, query, payload, mv):
        return 200, self.store.render_masking_view(mv)

    def create_masking_view(self, query, payload):
        masking_view_id = payload.get("maskingViewId")
        if not masking_view_id:
            raise MockError(400, "maskingViewId is required")
        if masking_view_id in self.store.masking_views:
            raise MockError(409, "Masking View {0} already exists".format(
                masking_view_id))
        view = {"maskingViewId": masking_view_id}
        selection = payload.get("hostOrHostGroupSelection", {})
        if "useExistingHostParam" in selection:
            host_id = selection["useExistingHostParam"]["hostId"]
            self.store.host(host_id)
            view["hostId"] = host_id
        elif "useExistingHostGroupParam" in selection:
            # Host groups are not modelled.
            raise _not_found("Host Group", selection[
                "useExistingHostGroupParam"]["hostGroupId"])
        else:
            raise MockError(400, "A host or host group is required")
        port_group_id = payload.get("portGroupSelection", {}).get(
            "useExistingPortGroupParam", {}).get("portGroupId")
        storage_group_id = payload.get("storageGroupSelection", {}).get(
            "useExistingStorageGroupParam", {}).get("storageGroupId")
        view["portGroupId"] = self.store.port_group(port_group_id)[
            "portGroupId"]
        view["storageGroupId"] = self.store.storage_group(storage_group_id)[
            "storageGroupId"]
        self.store.masking_views[masking_view_id] = view
        return 201, self.store.render_masking_view(masking_view_id)

    def delete_masking_view(self, query, payload, mv):
        self.store.masking_view(mv)
        del self.store.masking_views[mv]
        return 204, None

    def get_masking_view_connections(self, query, payload, mv):
        view = self.store.masking_view(mv)
        host = self.store.host(view["hostId"])
        ports = self.store.port_group(view["portGroupId"])["symmetrixPortKey"]
        connections = []
        volume_filter = query.get("volume_id")
        for lun, volume_id in enumerate(
                self.store.volumes_in(view["storageGroupId"]), start=1):
            if volume_filter and volume_id != volume_filter:
                continue
            for hba in host["initiator"]:
                for port in ports:
                    connections.append({
                        "host_lun_address": "%04x" % lun,
                        "volumeId": volume_id,
                        "cap_gb": _cap_gb(
                            self.store.volumes[volume_id]["cap_cyl"]),
                        "initiatorId": hba,
                        "alias": "{0}/{1}".format(view["hostId"], hba),
                        "dir_port": "{0}:{1}".format(port["directorId"],
                                                     port["portId"]),
                        "logged_in": True,
                        "on_fabric": True,
                    })
        return 200, {"maskingViewConnection": connections}

    #
    # Port groups
    #

    def list_port_groups(self, query, payload):
        port_groups = sorted(self.store.port_groups)
        if query.get("fibre") == "true":
            port_groups = [pg for pg in port_groups
                           if self.store.port_groups[pg]["type"] == "Fibre"]
        if query.get("iscsi") == "true":
            port_groups = [pg for pg in port_groups
                           if self.store.port_groups[pg]["type"] == "iSCSI"]
        return 200, {"portGroupId": port_groups}

    def get_port_group(self, query, payload, pg):
        return 200, self.store.render_port_group(pg)

    def _port_keys(self, ports):
        keys = []
        for port in ports:
            director_id, port_id = port["directorId"], port["portId"]
            self.store.port(director_id, port_id)
            keys.append((director_id, port_id))
        return keys

    def create_port_group(self, query, payload):
        port_group_id = payload.get("portGroupId")
        if not port_group_id:
            raise MockError(400, "portGroupId is required")
        if port_group_id in self.store.port_groups:
            raise MockError(409, "Port Group {0} already exists".format(
                port_group_id))
        keys = self._port_keys(payload.get("symmetrixPortKey", []))
        self.store.add_port_group(port_group_id, keys,
                                  payload.get("port_group_protocol"))
        return 201, self.store.render_port_group(port_group_id)

    def edit_port_group(self, query, payload, pg):
        port_group = self.store.port_group(pg)
        action = payload.get("editPortGroupActionParam", {})
        current = port_group["symmetrixPortKey"]
        if "addPortParam" in action:
            for director_id, port_id in self._port_keys(
                    action["addPortParam"]["port"]):
                key = {"directorId": director_id, "portId": port_id}
                if key not in current:
                    current.append(key)
        elif "removePortParam" in action:
            for director_id, port_id in self._port_keys(
                    action["removePortParam"]["port"]):
                key = {"directorId": director_id, "portId": port_id}
                if key not in current:
                    raise MockError(400, "Port {0}:{1} is not in {2}".format(
                        director_id, port_id, pg))
                current.remove(key)
        else:
            raise MockError(400, "Unsupported port group action")
        return 200, self.store.render_port_group(pg)

    def delete_port_group(self, query, payload, pg):
        self.store.port_group(pg)
        if self.store.views_of("portGroupId", pg):
            raise MockError(400, "Port Group {0} is in a masking view"
                            .format(pg))
        del self.store.port_groups[pg]
        return 204, None

    #
    # Initiators and hosts
    #

    def list_initiators(self, query, payload):
        initiator_ids = []
        for initiator_id in sorted(self.store.initiators):
            initiator = self.store.initiators[initiator_id]
            if query.get("initiator_hba") and \
                    initiator["hba"] != query["initiator_hba"]:
                continue
            if query.get("iscsi") == "true" and initiator["type"] != "ISCSI":
                continue
            if query.get("in_a_host") == "true" and \
                    self.store.host_of(initiator["hba"]) is None:
                continue
            initiator_ids.append(initiator_id)
        return 200, {"initiatorId": initiator_ids}

    def get_initiator(self, query, payload, initiator):
        return 200, self.store.render_initiator(initiator)

    def list_hosts(self, query, payload):
        return 200, {"hostId": sorted(self.store.hosts)}

    def get_host(self, query, payload, host):
        return 200, self.store.render_host(host)

    def _check_free_initiators(self, hbas):
        for hba in hbas:
            self.store.initiator_by_hba(hba)
            owner = self.store.host_of(hba)
            if owner is not None:
                raise MockError(400, "Initiator {0} belongs to host {1}"
                                .format(hba, owner))

    def create_host(self, query, payload):
        host_id = payload.get("hostId")
        if not host_id:
            raise MockError(400, "hostId is required")
        if host_id in self.store.hosts:
            raise MockError(409, "Host {0} already exists".format(host_id))
        hbas = payload.get("initiatorId", [])
        self._check_free_initiators(hbas)
        self.store.add_host(host_id, hbas)
        return 201, self.store.render_host(host_id)

    def edit_host(self, query, payload, host):
        record = self.store.host(host)
        action = payload.get("editHostActionParam", {})
        if "addInitiatorParam" in action:
            hbas = action["addInitiatorParam"]["initiator"]
            self._check_free_initiators(hbas)
            record["initiator"].extend(hbas)
        elif "removeInitiatorParam" in action:
            for hba in action["removeInitiatorParam"]["initiator"]:
                if hba not in record["initiator"]:
                    raise MockError(400, "Initiator {0} is not in host {1}"
                                    .format(hba, host))
                record["initiator"].remove(hba)
        elif "renameHostParam" in action:
            new_host_id = action["renameHostParam"]["new_host_name"]
            if new_host_id in self.store.hosts:
                raise MockError(409, "Host {0} already exists".format(
                    new_host_id))
            record["hostId"] = new_host_id
            self.store.hosts[new_host_id] = self.store.hosts.pop(host)
            for view in self.store.masking_views.values():
                if view.get("hostId") == host:
                    view["hostId"] = new_host_id
            host = new_host_id
        else:
            raise MockError(400, "Unsupported host action")
        return 200, self.store.render_host(host)

    def delete_host(self, query, payload, host):
        self.store.host(host)
        if self.store.views_of("hostId", host):
            raise MockError(400, "Host {0} is in a masking view".format(host))
        del self.store.hosts[host]
        return 204, None

    #
    # Iterators
    #

    def get_iterator_page(self, query, payload, iterator):
        if self.induced.get_iterator_page_error:
            raise MockError(500, "Induced error: get iterator page")
        try:
            record = self.store.iterators[iterator]
        except KeyError:
            raise _not_found("Iterator", iterator)
        try:
            first, last = int(query["from"]), int(query["to"])
        except (KeyError, ValueError):
            raise MockError(400, "from and to are required")
        if first < 1 or first > last or last > record["count"] or \
                last - first + 1 > self.page_size:
            raise MockError(400, "Invalid page {0}-{1}".format(first, last))
        return 200, {"result": record["elements"][first - 1:last],
                     "from": first, "to": last}

    def delete_iterator(self, query, payload, iterator):
        if self.store.iterators.pop(iterator, None) is None:
            raise _not_found("Iterator", iterator)
        return 204, None

    #
    # Snapshots
    #

    def list_snap_volumes(self, query, payload):
        volume_ids = sorted(v for v, snapshots in self.store.snapshots.items()
                            if snapshots)
        devices = []
        if query.get("includeDetails") == "true":
            for volume_id in volume_ids:
                devices.append({
                    "symmetrixId": self.store.symmetrix_id,
                    "deviceName": volume_id,
                    "snapshotSrcs": self._snapshot_sources(volume_id),
                })
        return 200, {"name": volume_ids, "symDevice": devices}

    def _snapshot_sources(self, volume_id):
        sources = []
        for snapshot_id, generations in sorted(
                self.store.snapshots.get(volume_id, {}).items()):
            for generation, record in enumerate(generations):
                sources.append({
                    "snapshotName": snapshot_id,
                    "generation": generation,
                    "timestamp": record["timestamp"],
                    "linkedDevices": [{"targetDevice": target,
                                       "defined": True, "copy": False}
                                      for target in record["linkedDevices"]],
                    "state": "Established",
                    "expired": False,
                })
        return sources

    def get_volume_snapshots(self, query, payload, volume):
        self.store.volume(volume)
        links = [{"targetDevice": volume, "snapshotName": snapshot_id,
                  "linkSourceName": source_id, "defined": True}
                 for source_id, snapshot_id in self.store.links_to(volume)]
        return 200, {"deviceName": volume,
                     "snapshotSrcs": self._snapshot_sources(volume),
                     "snapshotLnks": links}

    def get_snapshot(self, query, payload, volume, snap):
        generations = self.store.generations(volume, snap)
        return 200, {"deviceName": volume, "name": snap,
                     "generation": list(range(len(generations)))}

    def get_snapshot_generations(self, query, payload, volume, snap):
        generations = self.store.generations(volume, snap)
        return 200, {"generation": list(range(len(generations)))}

    def get_snapshot_generation(self, query, payload, volume, snap, gen):
        generations = self.store.generations(volume, snap)
        try:
            record = generations[int(gen)]
        except IndexError:
            raise _not_found("Generation", gen)
        return 200, {
            "deviceName": volume,
            "snapshotName": snap,
            "generation": int(gen),
            "timestamp": record["timestamp"],
            "timeToLive": record["timeToLive"],
            "linkedDevices": [{"targetDevice": target}
                              for target in record["linkedDevices"]],
            "state": "Established",
            "isExpired": False,
        }

    @staticmethod
    def _device_names(payload, key):
        return [device["name"] for device in payload.get(key, [])]

    def _snapshot_link(self, snap):
        return "{0}/replication/symmetrix/{1}/snapshot/{2}".format(
            SUPPORTED_VERSIONS[0], self.store.symmetrix_id, snap)

    def create_snapshot(self, query, payload, snap):
        if self.induced.create_snapshot_error:
            raise MockError(500, "Induced error: create snapshot")
        sources = self._device_names(payload, "deviceNameListSource")
        if not sources:
            raise MockError(400, "deviceNameListSource is required")
        for volume_id in sources:
            self.store.volume(volume_id)
        for volume_id in sources:
            self.store.add_snapshot(volume_id, snap,
                                    payload.get("timeToLive", 0))
        return self._mutated(payload, self._snapshot_link(snap),
                             {"name": snap, "deviceName": sources},
                             name="Create Snapshot " + snap)

    def modify_snapshot(self, query, payload, snap):
        sources = self._device_names(payload, "deviceNameListSource")
        targets = self._device_names(payload, "deviceNameListTarget")
        generation = int(payload.get("generation", 0))
        action = payload.get("action")
        records = []
        for volume_id in sources:
            generations = self.store.generations(volume_id, snap)
            try:
                records.append(generations[generation])
            except IndexError:
                raise _not_found("Generation", generation)
        if action == "Rename":
            new_name = payload.get("newsnapshotname")
            if not new_name:
                raise MockError(400, "newsnapshotname is required")
            for volume_id in sources:
                snapshots = self.store.snapshots[volume_id]
                if new_name in snapshots:
                    raise MockError(409, "Snapshot {0} already exists".format(
                        new_name))
                snapshots[new_name] = snapshots.pop(snap)
        elif action == "Link":
            for target in targets:
                self.store.volume(target)
                if self.store.links_to(target):
                    raise MockError(400, "Volume {0} is already linked"
                                    .format(target))
            for record, target in zip(records, targets):
                record["linkedDevices"].append(target)
        elif action == "Unlink":
            for record, target in zip(records, targets):
                if target not in record["linkedDevices"]:
                    raise MockError(400, "Volume {0} is not linked to {1}"
                                    .format(target, snap))
            for record, target in zip(records, targets):
                record["linkedDevices"].remove(target)
        else:
            raise MockError(400, "Unsupported snapshot action {0}".format(
                action))
        return self._mutated(payload, self._snapshot_link(snap), {},
                             name="{0} Snapshot {1}".format(action, snap))

    def delete_snapshot(self, query, payload, snap):
        sources = self._device_names(payload, "deviceNameListSource")
        generation = int(payload.get("generation", 0))
        for volume_id in sources:
            generations = self.store.generations(volume_id, snap)
            if generation >= len(generations):
                raise _not_found("Generation", generation)
            if generations[generation]["linkedDevices"]:
                raise MockError(400, "Snapshot {0} has linked volumes".format(
                    snap))
        for volume_id in sources:
            snapshots = self.store.snapshots[volume_id]
            del snapshots[snap][generation]
            if not snapshots[snap]:
                del snapshots[snap]
            if not snapshots:
                del self.store.snapshots[volume_id]
        return self._mutated(payload, self._snapshot_link(snap), {},
                             name="Delete Snapshot " + snap)
