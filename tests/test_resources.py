import pytest

from infinibox_client import InfiniBoxClient
from infinibox_client.auth import BasicAuth
from infinibox_client.exceptions import (
    NotFoundError,
    RemoteAPIError,
    RemoteFaultError,
    ResolutionError,
    UnexpectedResponseError,
)
from infinibox_client.models import Heartbeat, Host, Plugin, Volume

API = "https://ibox/api/rest"


def build_client(tenant=None):
    return InfiniBoxClient(
        base_url="https://ibox", auth_strategy=BasicAuth("admin", "secret"), tenant=tenant
    )


def counted(items):
    return {"metadata": {"number_of_objects": len(items), "pages_total": 1}, "result": items}


def test_create_volume_payload(requests_mock):
    matcher = requests_mock.post(
        f"{API}/volumes", json={"result": {"id": 10, "name": "vol1", "size": 1073741824}}
    )

    volume = build_client(tenant="4").volumes.create("vol1", pool_id=2, size=1073741824)

    assert volume.id == 10
    assert matcher.last_request.json() == {
        "name": "vol1",
        "pool_id": 2,
        "size": 1073741824,
        "provtype": "THIN",
        "write_protected": False,
        "ssd_enabled": True,
    }
    assert matcher.last_request.headers["X-INFINIDAT-TENANT-ID"] == "4"


def test_volume_update_sends_only_changed_attribute(requests_mock):
    matcher = requests_mock.put(f"{API}/volumes/10", json={"result": {"id": 10, "size": 2048}})

    updated = build_client().volumes.resize(Volume(id=10, name="vol1"), 2048)

    assert updated.size == 2048
    assert matcher.last_request.json() == {"size": 2048}


def test_snapshot_defaults_name(requests_mock):
    matcher = requests_mock.post(f"{API}/volumes", json={"result": {"id": 11, "parent_id": 10}})

    snapshot = build_client().volumes.snapshot(10)

    assert snapshot.parent_id == 10
    body = matcher.last_request.json()
    assert body["parent_id"] == 10
    assert body["name"].startswith("auto-snapshot-")


def test_restore_requires_confirmation(requests_mock):
    requests_mock.post(f"{API}/volumes/10/restore?approved=true", json={"result": False})

    with pytest.raises(RemoteAPIError) as excinfo:
        build_client().volumes.restore(10, 11)

    assert str(excinfo.value) == (
        "error restoring volume 10 from snapshot ID 11: operation not completed successfully"
    )


def test_restore_posts_snapshot_id(requests_mock):
    matcher = requests_mock.post(f"{API}/volumes/10/restore", json={"result": True})

    build_client().volumes.restore(10, 11)

    assert matcher.last_request.json() == 11
    assert matcher.last_request.qs == {"approved": ["true"]}


def test_host_create_with_chap(requests_mock):
    matcher = requests_mock.post(f"{API}/hosts", json={"result": {"id": 4, "name": "esx1"}})

    host = build_client().hosts.create(
        "esx1",
        security_method="CHAP",
        security_chap_inbound_username="user",
        security_chap_inbound_secret="secret123456",
        security_chap_outbound_username=None,
    )

    assert host.name == "esx1"
    assert matcher.last_request.json() == {
        "name": "esx1",
        "security_method": "CHAP",
        "security_chap_inbound_username": "user",
        "security_chap_inbound_secret": "secret123456",
    }


def test_host_create_rejects_unknown_settings():
    with pytest.raises(TypeError, match="colour"):
        build_client().hosts.create("esx1", colour="blue")


def test_host_map_volume(requests_mock):
    matcher = requests_mock.post(
        f"{API}/hosts/4/luns?approved=true",
        json={"result": {"id": 7, "lun": 12, "host_id": 4, "volume_id": 10}},
    )

    lun = build_client().hosts.map_volume(Host(id=4, name="esx1"), 10, lun=12)

    assert lun.lun == 12
    assert matcher.last_request.json() == {"volume_id": 10, "lun": 12}


def test_host_ports_are_decoded(requests_mock):
    requests_mock.get(
        f"{API}/hosts",
        json=counted(
            [
                {"id": 1, "name": "a", "ports": [{"type": "FC", "address": "5001438001321bfc"}]},
                {"id": 2, "name": "b", "ports": [{"type": "ISCSI", "address": "iqn.1998-01.com.vmware:b"}]},
            ]
        ),
    )
    client = build_client()

    assert client.hosts.get_id_by_initiator_address("iqn.1998-01.com.vmware:b") == 2
    with pytest.raises(NotFoundError):
        client.hosts.get_id_by_initiator_address("iqn.unknown")


def test_host_unmap_volume(requests_mock):
    matcher = requests_mock.delete(
        f"{API}/hosts/4/luns/volume_id/10?approved=true", json={"result": {"lun": 1}}
    )

    build_client().hosts.unmap_volume(4, 10)

    assert matcher.called


def test_cluster_map_volume_holds_lock(requests_mock):
    client = build_client()
    observed = []

    def _map(request, context):
        observed.append(client.cluster_locks.lock_for(5).locked())
        return {"result": {"lun": 1, "clustered": True, "host_cluster_id": 5}}

    requests_mock.post(f"{API}/clusters/5/luns", json=_map)

    lun = client.clusters.map_volume(5, 10)

    assert lun.clustered is True
    assert observed == [True]
    assert 5 in client.cluster_locks


def test_cluster_records_decode_members(requests_mock):
    requests_mock.get(
        f"{API}/clusters/5",
        json={"result": {"id": 5, "name": "c1", "hosts": [{"id": 1, "name": "a"}], "luns": []}},
    )

    cluster = build_client().clusters.get(5)

    assert cluster.hosts[0].name == "a"
    assert cluster.luns == []


def test_pool_create_uses_tenant_header(requests_mock):
    matcher = requests_mock.post(f"{API}/pools", json={"result": {"id": 3, "name": "p1"}})

    build_client(tenant="8").pools.create("p1", 10**12, 2 * 10**12)

    assert matcher.last_request.headers["X-INFINIDAT-TENANT-ID"] == "8"
    assert matcher.last_request.json()["virtual_capacity"] == 2 * 10**12


def test_tenants_listing_ignores_client_scope(requests_mock):
    matcher = requests_mock.get(f"{API}/tenants", json=counted([{"id": 1, "name": "default"}]))

    tenants = build_client(tenant="8").tenants.list()

    assert tenants[0].name == "default"
    assert "X-INFINIDAT-TENANT-ID" not in matcher.last_request.headers


def test_metadata_helpers(requests_mock):
    put = requests_mock.put(
        f"{API}/metadata/10", json={"result": [{"object_id": 10, "key": "owner", "value": "ops"}]}
    )
    requests_mock.get(
        f"{API}/metadata/10/owner", json={"result": {"object_id": 10, "key": "owner", "value": "ops"}}
    )
    client = build_client()

    client.volumes.set_metadata(10, "owner", "ops")

    assert put.last_request.json() == {"owner": "ops"}
    assert client.volumes.get_metadata_value(10, "owner") == "ops"


def test_metadata_for_object_without_entries(requests_mock):
    requests_mock.get(f"{API}/metadata/10", json=counted([]))

    assert build_client().volumes.get_metadata(10) == []


def test_initiator_lookup(requests_mock):
    matcher = requests_mock.get(
        f"{API}/initiators",
        json={"result": [{"address": "iqn.a", "host_id": 2, "type": "ISCSI"}]},
    )

    initiator = build_client(tenant="3").initiators.get_by_address("iqn.a")

    assert initiator.host_id == 2
    assert matcher.last_request.qs == {"address": ["eq:iqn.a"]}
    assert matcher.last_request.headers["X-INFINIDAT-TENANT-ID"] == "3"


def test_non_list_collection_item_is_rejected(requests_mock):
    requests_mock.get(f"{API}/volumes/10/luns", json={"result": {"lun": 1}})

    with pytest.raises(UnexpectedResponseError, match="error getting luns of volume 10"):
        build_client().volumes.get_luns(10)


def test_metadata_errors_name_the_object(requests_mock):
    requests_mock.get(
        f"{API}/metadata/77/owner",
        json={"error": {"code": "METADATA_IS_NOT_SUPPORTED", "message": "missing"}},
        status_code=404,
    )
    requests_mock.get(f"{API}/metadata/77", json={"result": []})
    client = build_client()

    with pytest.raises(RemoteAPIError, match="error getting metadata of object ID 77 key owner"):
        client.metadata.get(77, "owner")
    with pytest.raises(UnexpectedResponseError) as excinfo:
        client.metadata.for_object(77)

    assert "77" in str(excinfo.value)
    assert "number_of_objects" in str(excinfo.value)


def test_metadata_write_errors_name_the_object(requests_mock):
    requests_mock.put(f"{API}/metadata/77", status_code=500, text="down")
    requests_mock.delete(f"{API}/metadata/77", status_code=500, text="down")

    client = build_client()
    with pytest.raises(RemoteFaultError, match="error setting metadata of object ID 77 key owner"):
        client.metadata.set(77, "owner", "ops")
    with pytest.raises(RemoteFaultError, match="error clearing metadata of object ID 77"):
        client.metadata.clear(77)


def test_empty_update_is_rejected(requests_mock):
    client = build_client()

    with pytest.raises(ResolutionError, match="no attributes given to update volume 10"):
        client.volumes._update(10, {})
    with pytest.raises(ResolutionError, match="no attributes given to update host esx1"):
        client.hosts.update(Host(id=4, name="esx1"))
    assert requests_mock.call_count == 0


def test_host_rename_cannot_carry_security_settings(requests_mock):
    with pytest.raises(ResolutionError, match="cannot be combined with security settings"):
        build_client().hosts.update(4, name="esx2", security_method="CHAP")

    assert requests_mock.call_count == 0


def test_host_update_security_settings(requests_mock):
    matcher = requests_mock.put(
        f"{API}/hosts/4?approved=true", json={"result": {"id": 4, "security_method": "CHAP"}}
    )

    host = build_client().hosts.update(4, security_method="CHAP")

    assert host.security_method == "CHAP"
    assert matcher.last_request.json() == {"security_method": "CHAP"}


def test_plugin_lifecycle(requests_mock):
    create = requests_mock.post(
        f"{API}/plugins", json={"result": {"id": 3, "name": "csi", "type": "CSI"}}
    )
    requests_mock.get(f"{API}/plugins", json=counted([{"id": 3, "name": "csi"}]))
    rename = requests_mock.put(f"{API}/plugins/3", json={"result": {"id": 3, "name": "csi-prod"}})
    delete = requests_mock.delete(
        f"{API}/plugins/3?approved=true", json={"result": {"id": 3, "name": "csi-prod"}}
    )
    client = build_client()

    plugin = client.plugins.create("csi", type="CSI", management_url="https://csi.local")
    found = client.plugins.get_by_name("csi")
    renamed = client.plugins.rename(found, "csi-prod")
    client.plugins.delete(renamed)

    assert plugin.type == "CSI"
    assert create.last_request.json() == {
        "name": "csi",
        "type": "CSI",
        "management_url": "https://csi.local",
    }
    assert rename.last_request.json() == {"name": "csi-prod"}
    assert delete.called


def test_plugin_heartbeat(requests_mock):
    heartbeat = Heartbeat(
        entity_counts=[{"entity": "volumes", "count": 4}],
        health_state={"state": "OK", "messages": []},
    )
    matcher = requests_mock.put(f"{API}/plugins/3/heartbeat", json={"result": heartbeat.payload()})

    accepted = build_client().plugins.send_heartbeat(Plugin(id=3, name="csi"), heartbeat)

    assert matcher.last_request.json() == {
        "entity_counts": [{"entity": "volumes", "count": 4}],
        "health_state": {"state": "OK", "messages": []},
    }
    assert accepted.health_state["state"] == "OK"


def test_plugin_heartbeat_failure_names_the_plugin(requests_mock):
    requests_mock.put(
        f"{API}/plugins/3/heartbeat",
        json={"error": {"code": "PLUGIN_NOT_FOUND", "message": "no plugin"}},
        status_code=404,
    )

    with pytest.raises(RemoteAPIError, match="error sending plugin heartbeat csi"):
        build_client().plugins.send_heartbeat(Plugin(id=3, name="csi"), {"entity_counts": []})
