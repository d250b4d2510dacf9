"""
Provisioning workflows against the mock Unisphere
"""

from powermax import (
    ArrayNotAllowedError,
    DecodeError,
    PowerMax,
    PowerMaxError,
    PowerMaxHTTPError,
    TransportError,
)
from powermax.mock import MockUnisphere

SYMMETRIX_ID = "000197900046"
ISCSI_HBA = "iqn.1993-08.org.centos:01:5ae577b352a2"


class MockTestBase(object):

    def setup_method(self, __):
        self.unisphere = MockUnisphere()
        self.array = PowerMax("unisphere", "username", "password",
                              poll_interval=0, adapter=self.unisphere)
        self.store = self.unisphere.store

    @staticmethod
    def assert_http_error(code, func, *args, **kwargs):
        try:
            func(*args, **kwargs)
        except PowerMaxHTTPError as err:
            assert err.code == code, err
        else:
            raise AssertionError()

    @staticmethod
    def assert_raises(error, func, *args, **kwargs):
        try:
            func(*args, **kwargs)
        except error:
            pass
        else:
            raise AssertionError()

    def new_volume(self, name="pvc-1", size=50,
                   storage_group_id="CSI-Test-SG-2"):
        return self.array.create_volume_in_storage_group_s(
            SYMMETRIX_ID, storage_group_id, name, size)


class TestTransport(MockTestBase):

    def test_authenticate(self):
        assert self.unisphere.calls == [("GET", "100/system/version")]
        version = self.array.authenticate()
        assert version["version"] == "V10.0.0.1"

    def test_bad_credentials(self):
        self.assert_http_error(401, PowerMax, "unisphere", "username", "wrong",
                               adapter=self.unisphere)

    def test_unsupported_version_on_server(self):
        self.array._rest_version = "84"
        self.assert_http_error(503, self.array.authenticate)

    def test_no_connection(self):
        self.unisphere.induced.no_connection = True
        self.assert_raises(TransportError, self.array.get_symmetrix_id_list)

    def test_invalid_json(self):
        self.unisphere.induced.invalid_json = True
        self.assert_raises(DecodeError, self.array.get_symmetrix_id_list)

    def test_bad_http_status(self):
        self.unisphere.induced.bad_http_status = True
        self.assert_http_error(500, self.array.get_storage_group_id_list,
                               SYMMETRIX_ID)

    def test_latency_exceeds_timeout(self):
        array = PowerMax("unisphere", "username", "password", timeout=0.05,
                         adapter=self.unisphere)
        self.unisphere.induced.latency = 0.2
        self.assert_raises(TransportError, array.get_symmetrix_id_list)

    def test_reset(self):
        self.unisphere.induced.bad_http_status = True
        self.store.add_storage_group("extra")
        self.unisphere.reset()
        assert self.unisphere.calls == []
        assert "extra" not in self.array.get_storage_group_id_list(
            SYMMETRIX_ID)


class TestSystem(MockTestBase):

    def test_symmetrix(self):
        assert self.array.get_symmetrix_id_list() == [SYMMETRIX_ID]
        symmetrix = self.array.get_symmetrix(SYMMETRIX_ID)
        assert symmetrix["symmetrixId"] == SYMMETRIX_ID
        self.assert_http_error(404, self.array.get_symmetrix, "000000000001")

    def test_allowed_arrays(self):
        self.array.set_allowed_arrays(["000197900047"])
        self.assert_raises(ArrayNotAllowedError,
                           self.array.get_storage_group_id_list, SYMMETRIX_ID)
        self.array.set_allowed_arrays([SYMMETRIX_ID])
        assert len(self.array.get_storage_group_id_list(SYMMETRIX_ID)) == 6

    def test_storage_pools(self):
        assert self.array.get_storage_pool_list(SYMMETRIX_ID) == \
            ["SRP_1", "SRP_2"]
        pool = self.array.get_storage_pool(SYMMETRIX_ID, "SRP_1")
        assert pool["srpId"] == "SRP_1"
        self.assert_http_error(404, self.array.get_storage_pool,
                               SYMMETRIX_ID, "SRP_9")

    def test_target_addresses(self):
        assert self.array.get_director_id_list(SYMMETRIX_ID) == \
            ["FA-1D", "FA-2D", "SE-1E", "SE-2E"]
        assert self.array.get_list_of_target_addresses(SYMMETRIX_ID) == \
            ["192.168.1.1", "192.168.1.2"]

    def test_ports(self):
        ports = self.array.get_port_list(SYMMETRIX_ID, "FA-1D")
        assert ports == [{"directorId": "FA-1D", "portId": "4"},
                         {"directorId": "FA-1D", "portId": "5"}]
        port = self.array.get_port(SYMMETRIX_ID, "FA-1D", "5")
        assert port["symmetrixPort"]["type"] == "FibreChannel"


class TestStorageGroups(MockTestBase):

    def test_seeded_storage_groups(self):
        assert self.array.get_storage_group_id_list(SYMMETRIX_ID) == \
            ["CSI-Test-SG-{0}".format(i) for i in range(1, 7)]
        storage_group = self.array.get_storage_group(SYMMETRIX_ID,
                                                     "CSI-Test-SG-1")
        assert storage_group["srp"] == "SRP_1"
        assert storage_group["slo"] == "Diamond"
        assert storage_group["num_of_vols"] == 2
        assert storage_group["maskingview"] == ["CSI-Test-MV-1"]

    def test_create_and_delete(self):
        storage_group = self.array.create_storage_group(
            SYMMETRIX_ID, "sg-new", "SRP_2", "Gold")
        assert storage_group["slo"] == "Gold"
        assert storage_group["num_of_vols"] == 0
        self.assert_http_error(409, self.array.create_storage_group,
                               SYMMETRIX_ID, "sg-new", "SRP_2", "Gold")
        self.array.delete_storage_group(SYMMETRIX_ID, "sg-new")
        self.assert_http_error(404, self.array.get_storage_group,
                               SYMMETRIX_ID, "sg-new")

    def test_create_without_srp(self):
        storage_group = self.array.create_storage_group(
            SYMMETRIX_ID, "sg-none", "None", "Diamond")
        assert storage_group["srp"] == "None"
        assert storage_group["slo"] == "None"

    def test_delete_in_masking_view(self):
        self.assert_http_error(400, self.array.delete_storage_group,
                               SYMMETRIX_ID, "CSI-Test-SG-1")

    def test_add_and_remove_volumes(self):
        job = self.array.add_volumes_to_storage_group(
            SYMMETRIX_ID, "CSI-Test-SG-2", ["00001", "00002"])
        assert job.status == "SUCCEEDED"
        assert self.array.get_volume_id_list_in_storage_group(
            SYMMETRIX_ID, "CSI-Test-SG-2") == ["00001", "00002"]
        storage_group = self.array.remove_volumes_from_storage_group(
            SYMMETRIX_ID, "CSI-Test-SG-2", ["00001"])
        assert storage_group["num_of_vols"] == 1
        storage_group = self.array.add_volumes_to_storage_group_s(
            SYMMETRIX_ID, "CSI-Test-SG-3", ["00002"])
        assert storage_group["num_of_vols"] == 1
        volume = self.array.get_volume(SYMMETRIX_ID, "00002")
        assert volume["storageGroupId"] == ["CSI-Test-SG-1", "CSI-Test-SG-2",
                                            "CSI-Test-SG-3"]

    def test_update_error(self):
        self.unisphere.induced.update_storage_group_error = True
        self.assert_http_error(500, self.array.add_volumes_to_storage_group,
                               SYMMETRIX_ID, "CSI-Test-SG-2", ["00001"])
        self.assert_http_error(500, self.array.create_volume_in_storage_group,
                               SYMMETRIX_ID, "CSI-Test-SG-2", "pvc-1", 50)


class TestVolumes(MockTestBase):

    def test_create_volume(self):
        volume = self.array.create_volume_in_storage_group(
            SYMMETRIX_ID, "CSI-Test-SG-2", "pvc-1", 50,
            metadata={"X-Csi-Pv-Name": "pvc-1"})
        assert volume["volumeId"] == "00003"
        assert volume["volume_identifier"] == "pvc-1"
        assert volume["cap_cyl"] == 50
        assert volume["storageGroupId"] == ["CSI-Test-SG-2"]

    def test_create_volume_s(self):
        volume = self.new_volume(size=20)
        assert volume["cap_cyl"] == 20
        assert ("PUT", "100/sloprovisioning/symmetrix/{0}/storagegroup/"
                "CSI-Test-SG-2".format(SYMMETRIX_ID)) in self.unisphere.calls
        assert not [call for call in self.unisphere.calls
                    if "/job/" in call[1]]

    def test_volume_not_found_after_create(self):
        self.store.add_volume("pvc-1", 10, ["CSI-Test-SG-3"])
        try:
            self.array.get_volume_by_identifier(SYMMETRIX_ID, "CSI-Test-SG-2",
                                                "pvc-1", 10)
        except PowerMaxError as err:
            assert "Failed to find newly created volume" in err.reason
        else:
            raise AssertionError()

    def test_rename_and_expand(self):
        volume = self.new_volume()
        volume_id = volume["volumeId"]
        renamed = self.array.rename_volume(SYMMETRIX_ID, volume_id, "pvc-2")
        assert renamed["volume_identifier"] == "pvc-2"
        expanded = self.array.expand_volume(SYMMETRIX_ID, volume_id, 100)
        assert expanded["cap_cyl"] == 100
        self.assert_http_error(400, self.array.expand_volume, SYMMETRIX_ID,
                               volume_id, 10)

    def test_delete_volume(self):
        volume_id = self.new_volume()["volumeId"]
        self.assert_http_error(400, self.array.delete_volume, SYMMETRIX_ID,
                               volume_id)
        self.array.remove_volumes_from_storage_group(
            SYMMETRIX_ID, "CSI-Test-SG-2", [volume_id])
        job = self.array.initiate_deallocation_of_tracks_from_volume(
            SYMMETRIX_ID, volume_id)
        job = self.array.wait_on_job_completion(SYMMETRIX_ID, job.job_id)
        assert job.status == "SUCCEEDED"
        assert self.array.get_volume(SYMMETRIX_ID,
                                     volume_id)["allocated_percent"] == 0
        self.array.delete_volume(SYMMETRIX_ID, volume_id)
        self.assert_http_error(404, self.array.get_volume, SYMMETRIX_ID,
                               volume_id)


class TestMasking(MockTestBase):

    def test_masking_view_lifecycle(self):
        volume_id = self.new_volume()["volumeId"]
        host = self.array.create_host(SYMMETRIX_ID, "CSI-Test-Node-4",
                                      [ISCSI_HBA])
        assert host["type"] == "iSCSI"
        masking_view = self.array.create_masking_view(
            SYMMETRIX_ID, "CSI-Test-MV-2", "CSI-Test-SG-2", "CSI-Test-Node-4",
            True, "iscsi_ports")
        assert masking_view["hostId"] == "CSI-Test-Node-4"
        assert self.array.get_masking_view_list(SYMMETRIX_ID) == \
            ["CSI-Test-MV-1", "CSI-Test-MV-2"]

        connections = self.array.get_masking_view_connections(
            SYMMETRIX_ID, "CSI-Test-MV-2")
        assert len(connections) == 2
        assert set(c["dir_port"] for c in connections) == \
            set(["SE-1E:0", "SE-2E:0"])
        assert self.array.get_masking_view_connections(
            SYMMETRIX_ID, "CSI-Test-MV-2", "00001") == []
        assert self.array.get_volume(
            SYMMETRIX_ID, volume_id)["num_of_front_end_paths"] == 1

        self.assert_http_error(400, self.array.delete_host, SYMMETRIX_ID,
                               "CSI-Test-Node-4")
        self.array.delete_masking_view(SYMMETRIX_ID, "CSI-Test-MV-2")
        self.array.delete_host(SYMMETRIX_ID, "CSI-Test-Node-4")
        assert "CSI-Test-Node-4" not in self.array.get_host_list(SYMMETRIX_ID)

    def test_create_masking_view_missing_group(self):
        self.assert_http_error(404, self.array.create_masking_view,
                               SYMMETRIX_ID, "mv", "CSI-Test-SG-2",
                               "CSI-Test-Node-2", True, "no-such-pg")
        self.assert_http_error(404, self.array.create_masking_view,
                               SYMMETRIX_ID, "mv", "CSI-Test-SG-2",
                               "host-group", False, "csi-pg")

    def test_port_groups(self):
        assert self.array.get_port_group_list(SYMMETRIX_ID) == \
            ["csi-pg", "iscsi_ports"]
        assert self.array.get_port_group_list(SYMMETRIX_ID, "iscsi") == \
            ["iscsi_ports"]
        port_group = self.array.create_port_group(
            SYMMETRIX_ID, "pg-new", [{"directorId": "FA-1D", "portId": "4"}],
            protocol="SCSI_FC")
        assert port_group["num_of_ports"] == 1
        self.assert_http_error(404, self.array.create_port_group,
                               SYMMETRIX_ID, "pg-bad",
                               [{"directorId": "FA-9D", "portId": "4"}])
        self.array.delete_port_group(SYMMETRIX_ID, "pg-new")
        self.assert_http_error(400, self.array.delete_port_group,
                               SYMMETRIX_ID, "iscsi_ports")

    def test_update_port_group(self):
        port_group = self.array.update_port_group(
            SYMMETRIX_ID, "csi-pg", [{"directorId": "FA-1D", "portId": "5"},
                                     {"directorId": "fa-2d",
                                      "portId": "FA-2D:5"}])
        assert port_group["symmetrixPortKey"] == [
            {"directorId": "FA-1D", "portId": "5"},
            {"directorId": "FA-2D", "portId": "5"},
        ]
        puts = [call for call in self.unisphere.calls if call[0] == "PUT"]
        assert len(puts) == 2

    def test_initiators(self):
        assert len(self.array.get_initiator_list(SYMMETRIX_ID)) == 5
        assert len(self.array.get_initiator_list(SYMMETRIX_ID,
                                                 iscsi=True)) == 3
        assert len(self.array.get_initiator_list(SYMMETRIX_ID,
                                                 in_host=True)) == 3
        initiator_ids = self.array.get_initiator_list(
            SYMMETRIX_ID, initiator_hba=ISCSI_HBA)
        assert len(initiator_ids) == 1
        initiator = self.array.get_initiator(SYMMETRIX_ID, initiator_ids[0])
        assert initiator["initiatorId"] == ISCSI_HBA
        assert "host" not in initiator

    def test_hosts(self):
        host = self.array.get_host(SYMMETRIX_ID, "CSI-Test-Node-3-FC")
        assert host["type"] == "Fibre"
        host = self.array.update_host_initiators(SYMMETRIX_ID, host,
                                                 ["5000000000000002"])
        assert host["initiator"] == ["5000000000000002"]
        self.assert_http_error(400, self.array.create_host, SYMMETRIX_ID,
                               "CSI-Test-Node-5", ["5000000000000002"])
        host = self.array.update_host_name(SYMMETRIX_ID, "CSI-Test-Node-1",
                                           "CSI-Test-Node-1-new")
        assert host["maskingview"] == ["CSI-Test-MV-1"]
        self.assert_http_error(404, self.array.get_host, SYMMETRIX_ID,
                               "CSI-Test-Node-1")


class TestSnapshots(MockTestBase):

    def test_seeded_snapshots(self):
        snap_volumes = self.array.get_snap_volume_list(
            SYMMETRIX_ID, {"includeDetails": "true"})
        assert snap_volumes["name"] == ["00001", "00002"]
        assert snap_volumes["symDevice"][0]["snapshotSrcs"][0][
            "snapshotName"] == "DEL-snapshot-1"

    def test_snapshot_lifecycle(self):
        self.array.create_snapshot(SYMMETRIX_ID, "snap-1", ["00001"])
        self.array.create_snapshot(SYMMETRIX_ID, "snap-1", ["00001"], ttl=4)
        info = self.array.get_snapshot_info(SYMMETRIX_ID, "00001", "snap-1")
        assert info["generation"] == [0, 1]
        assert self.array.get_snapshot_generations(
            SYMMETRIX_ID, "00001", "snap-1")["generation"] == [0, 1]
        generation = self.array.get_snapshot_generation_info(
            SYMMETRIX_ID, "00001", "snap-1", 0)
        assert generation["timeToLive"] == 4

        target_id = self.new_volume("target", 7)["volumeId"]
        self.array.modify_snapshot(SYMMETRIX_ID, ["00001"], [target_id],
                                   "snap-1", "Link")
        links = self.array.get_volume_snap_info(SYMMETRIX_ID, target_id)
        assert links["snapshotLnks"][0]["linkSourceName"] == "00001"
        assert self.array.get_volume(SYMMETRIX_ID, target_id)["snapvx_target"]
        self.assert_http_error(400, self.array.delete_snapshot, SYMMETRIX_ID,
                               "snap-1", ["00001"])

        self.array.modify_snapshot(SYMMETRIX_ID, ["00001"], [target_id],
                                   "snap-1", "Unlink")
        self.array.modify_snapshot(SYMMETRIX_ID, ["00001"], [], "snap-1",
                                   "Rename", new_snapshot_id="snap-2")
        self.assert_http_error(404, self.array.get_snapshot_info,
                               SYMMETRIX_ID, "00001", "snap-1")

        self.array.delete_snapshot(SYMMETRIX_ID, "snap-2", ["00001"])
        self.array.delete_snapshot(SYMMETRIX_ID, "snap-2", ["00001"])
        sources = self.array.get_volume_snap_info(SYMMETRIX_ID, "00001")
        assert [s["snapshotName"] for s in sources["snapshotSrcs"]] == \
            ["DEL-snapshot-1"]

    def test_create_snapshot_error(self):
        self.unisphere.induced.create_snapshot_error = True
        self.assert_http_error(500, self.array.create_snapshot, SYMMETRIX_ID,
                               "snap-1", ["00001"])
        self.unisphere.induced.create_snapshot_error = False
        self.assert_http_error(404, self.array.create_snapshot, SYMMETRIX_ID,
                               "snap-1", ["0FFFF"])
