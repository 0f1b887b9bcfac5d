import pytest

from ledgerbench.tpcc_txn import (
    exec_delivery,
    exec_new_order,
    exec_order_status,
    exec_payment,
    exec_stock_level,
    run_task,
)
from ledgerbench.tpcc_workload import TpccOp, TpccTask

NOW = 1700000000123


class FakeClient:
    def __init__(self, store):
        self.store = dict(store)
        self.buffered = []
        self.all_buffered = []
        self.puts = {}
        self.begins = 0
        self.commits = 0
        self.aborted = False

    def begin(self):
        self.begins += 1

    def buffer_key(self, key):
        self.buffered.append(key)
        self.all_buffered.append(key)

    def batch_get(self):
        found = {k: self.store[k] for k in self.buffered if k in self.store}
        self.buffered = []
        return found

    def put(self, key, value):
        self.puts[key] = value

    def commit(self):
        self.commits += 1
        return True

    def abort(self):
        self.aborted = True


def dist_fields():
    return [f"dist{n:02d}" for n in range(1, 11)]


def new_order_store(stock_qty="50", stock_w="1"):
    return {
        "w_tax_1": "0.1",
        "d_tax_2_1": "0.05,7",
        "c_discount_3_2_1": "0.2",
        "i_10": "10,x,name,2.5",
        f"s_10_{stock_w}": ",".join(["10", stock_w, stock_qty] + dist_fields()),
    }


def test_new_order_writes_order_and_lines():
    client = FakeClient(new_order_store())
    exec_new_order(["1", "2", "3", "10", "1", "5"], client, NOW)
    assert client.puts["o_7_2_1"] == f"7,2,1,3,{NOW},,1,1"
    assert client.puts["c_last_order_3_2_1"] == "7"
    assert client.puts["d_tax_2_1"] == "0.05,8"
    assert client.puts["ol_7_2_1_1"] == "7,2,1,1,10,1,,5,11.500000,dist02"


def test_new_order_decrements_stock():
    client = FakeClient(new_order_store(stock_qty="50"))
    exec_new_order(["1", "2", "3", "10", "1", "5"], client, NOW)
    stock = client.puts["s_10_1"].split(",")
    assert stock[2] == str(50 - 5)
    assert stock[3:] == dist_fields()


def test_new_order_restocks_when_low():
    client = FakeClient(new_order_store(stock_qty="3"))
    exec_new_order(["1", "2", "3", "10", "1", "5"], client, NOW)
    assert client.puts["s_10_1"].split(",")[2] == str(3 - 5 + 100)


def test_new_order_remote_supply_is_not_all_local():
    client = FakeClient(new_order_store(stock_w="2"))
    exec_new_order(["1", "2", "3", "10", "2", "5"], client, NOW)
    assert client.puts["o_7_2_1"].split(",")[-1] == "0"
    assert "s_10_2" in client.puts


def test_new_order_buffers_item_and_stock_keys():
    client = FakeClient(new_order_store())
    exec_new_order(["1", "2", "3", "10", "1", "5"], client, NOW)
    assert client.all_buffered == [
        "w_tax_1", "d_tax_2_1", "c_discount_3_2_1", "i_10", "s_10_1"]


def payment_store():
    warehouse = ["w"] * 7 + ["100.0"]
    district = ["d"] * 8 + ["200.0"]
    customer = ["c"] * 15 + ["50.0", "10.0", "2"] + ["0"]
    return {
        "w_1": ",".join(warehouse),
        "d_2_1": ",".join(district),
        "c_3_2_1": ",".join(customer),
    }


def test_payment_updates_totals_and_history():
    client = FakeClient(payment_store())
    exec_payment(["1", "2", "3", "12.50"], client, NOW)
    assert client.puts["w_1"].split(",")[7] == f"{100.0 + 12.5:.6f}"
    assert client.puts["d_2_1"].split(",")[8] == f"{200.0 + 12.5:.6f}"
    customer = client.puts["c_3_2_1"].split(",")
    assert customer[15] == f"{50.0 - 12.5:.6f}"
    assert customer[16] == f"{10.0 + 12.5:.6f}"
    assert customer[17] == f"{2 + 1:.6f}"
    assert client.puts[f"h_3_2_1_{NOW}"] == "12.50"


def test_order_status_without_last_order_reads_once():
    client = FakeClient({})
    exec_order_status(["1", "2", "3"], client)
    assert client.all_buffered == [
        "w_1", "d_2_1", "c_3_2_1", "c_last_order_3_2_1"]
    assert client.puts == {}


def test_order_status_reads_order_lines():
    client = FakeClient({
        "c_last_order_3_2_1": "7",
        "o_7_2_1": "7,2,1,3,0,,2,1",
    })
    exec_order_status(["1", "2", "3"], client)
    assert client.all_buffered[-3:] == ["o_7_2_1", "ol_7_2_1_1", "ol_7_2_1_2"]
    assert client.puts == {}


def delivery_store():
    store = {f"d_tax_{d}_1": "0.1,1" for d in range(1, 11)}
    store["d_tax_1_1"] = "0.1,3"
    store["d_tax_2_1"] = "0.1,5"
    store["next_d_id_2_1"] = "5"
    store["o_1_1_1"] = "1,1,1,5,0,,2,1"
    store["ol_1_1_1_1"] = "1,1,1,1,10,1,,5,2.500000,info"
    store["ol_1_1_1_2"] = "1,1,1,2,11,1,,5,1.500000,info"
    store["c_5_1_1"] = ",".join(["c"] * 15 + ["10.0", "0", "0", "0"])
    return store


def test_delivery_advances_only_pending_districts():
    client = FakeClient(delivery_store())
    exec_delivery(["1", "4"], client, NOW)
    assert client.puts["next_d_id_1_1"] == "2"
    assert "next_d_id_2_1" not in client.puts
    assert not any(k.startswith("next_d_id_3") for k in client.puts)


def test_delivery_sets_carrier_and_delivery_time():
    client = FakeClient(delivery_store())
    exec_delivery(["1", "4"], client, NOW)
    assert client.puts["o_1_1_1"].split(",")[5] == "4"
    for number in (1, 2):
        assert client.puts[f"ol_1_1_1_{number}"].split(",")[6] == str(NOW)


def test_delivery_credits_customer():
    client = FakeClient(delivery_store())
    exec_delivery(["1", "4"], client, NOW)
    customer = client.puts["c_5_1_1"].split(",")
    assert customer[15] == f"{10.0 + 2.5 + 1.5:.6f}"
    assert customer[18] == f"{0 + 1:.6f}"


def stock_level_store(missing_order=None):
    store = {"d_tax_2_1": "0.1,21"}
    for i in range(1, 21):
        if i != missing_order:
            store[f"o_{i}_2_1"] = f"{i},2,1,3,0,,1,1"
        store[f"ol_{i}_2_1_1"] = f"{i},2,1,1,{100 + i},1,,5,1.0,info"
        store[f"s_{100 + i}_1"] = f"{100 + i},1,{i}"
    return store


def test_stock_level_finds_low_stock():
    client = FakeClient(stock_level_store())
    low = exec_stock_level(["1", "2", "10"], client)
    assert low == {str(100 + i) for i in range(1, 10)}
    assert client.aborted is False


def test_stock_level_aborts_on_missing_order():
    client = FakeClient(stock_level_store(missing_order=5))
    assert exec_stock_level(["1", "2", "10"], client) is None
    assert client.aborted is True


def test_run_task_commits_write_transactions():
    client = FakeClient(payment_store())
    assert run_task(TpccTask(TpccOp.PAYMENT, ["1", "2", "3", "1.00"]), client, NOW)
    assert client.begins == 1
    assert client.commits == 1


def test_run_task_does_not_commit_read_only():
    client = FakeClient({})
    assert run_task(TpccTask(TpccOp.ORDER_STATUS, ["1", "2", "3"]), client) is True
    assert client.begins == 1
    assert client.commits == 0


def test_bad_number_raises():
    client = FakeClient(payment_store())
    with pytest.raises(ValueError):
        exec_payment(["1", "2", "3", "abc"], client, NOW)