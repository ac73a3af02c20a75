"""
测试配置文件
Pytest conftest配置，定义全局fixtures和测试设置
"""
import sys
import os

# 设置测试环境变量，必须在任何导入之前
os.environ['TESTING'] = 'true'

import pytest
from typing import Any, Callable, Dict, List, Optional

# 添加项目根目录到Python路径
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from type_utils import (  # noqa: E402
    BufferPoolSection, EngineStatus, IOSection, LogSection, SemaphoreSection,
    SemaphoreWait, TransactionSection
)


SAMPLE_INNODB_STATUS = """
=====================================
2024-01-15 10:30:45 0x7f8b4c0a1700 INNODB MONITOR OUTPUT
=====================================
Per second averages calculated from the last 60 seconds
-----------------
BACKGROUND THREAD
-----------------
srv_master_thread loops: 1234 srv_active, 0 srv_shutdown, 567890 srv_idle
srv_master_thread log flush and writes: 567890
----------
SEMAPHORES
----------
OS WAIT ARRAY INFO: reservation count 12345
OS WAIT ARRAY INFO: signal count 67890
RW-shared spins 0, rounds 234567, OS waits 8901
RW-excl spins 0, rounds 123456, OS waits 4567
RW-sx spins 0, rounds 0, OS waits 0
Spin rounds per wait: 234567.00 RW-shared, 123456.00 RW-excl, 0.00 RW-sx
------------
TRANSACTIONS
------------
Trx id counter 123456789
Purge done for trx's n:o < 123456780 undo n:o < 50000
History list length 150000
LIST OF TRANSACTIONS FOR EACH SESSION:
---TRANSACTION 421234567890123, not started
0 lock struct(s), heap size 1136, 0 row lock(s)
---TRANSACTION 421234567890124, ACTIVE 30 sec
mysql tables in use 1, locked 1
2 lock struct(s), heap size 1136, 1 row lock(s)
MySQL thread id 12345, OS thread handle 140242842601216, query id 67890 localhost root updating
UPDATE users SET status = 'active' WHERE id = 1
--------
FILE I/O
--------
I/O thread 0 state: waiting for completed aio requests (insert buffer thread)
I/O thread 1 state: waiting for completed aio requests (log thread)
I/O thread 2 state: waiting for completed aio requests (read thread)
I/O thread 3 state: waiting for completed aio requests (write thread)
Pending normal aio reads: 5, aio writes: 10, ibuf aio reads: 0, log i/o's: 0, sync i/o's: 0
Pending flushes (fsync) log: 0; buffer pool: 0
1234 OS file reads, 5678 OS file writes, 234 OS fsyncs
0.50 reads/s, 16384 avg bytes/read, 2.50 writes/s, 0.10 fsyncs/s
-------------------------------------
INSERT BUFFER AND ADAPTIVE HASH INDEX
-------------------------------------
Ibuf: size 1, free list len 0, seg size 2, 0 merges
merged operations:
 insert 3, delete mark 2, delete 1
discarded operations:
 insert 0, delete mark 0, delete 0
Hash table size 2267, node heap has 1 buffer(s)
Hash table size 2267, node heap has 0 buffer(s)
0.00 hash searches/s, 0.00 non-hash searches/s
---
LOG
---
Log sequence number 1234567890
Log flushed up to   1234567800
Pages flushed up to 1234567700
Last checkpoint at  1234567600
0 pending log flushes, 0 pending chkp writes
123 log i/o's done, 0.50 log i/o's/second
----------------------
BUFFER POOL AND MEMORY
----------------------
Total large memory allocated 137428992
Dictionary memory allocated 123456
Buffer pool size   8192
Free buffers       1024
Database pages     7000
Old database pages 2580
Modified db pages  500
Pending reads      0
Pending writes: LRU 0, flush list 0, single page 0
Pages made young 1234, not young 5678
0.10 youngs/s, 0.20 non-youngs/s
Pages read 12345, created 234, written 5678
0.50 reads/s, 0.01 creates/s, 2.30 writes/s
Buffer pool hit rate 980 / 1000, young-making rate 0 / 1000 not 2 / 1000
Pages read ahead 0.00/s, evicted without access 0.00/s, Random read ahead 0.00/s
LRU len: 7000, unzip_LRU len: 0
I/O sum[0]:cur[0], unzip sum[0]:cur[0]
--------------
ROW OPERATIONS
--------------
0 queries inside InnoDB, 0 queries in queue
0 read views open inside InnoDB
Process ID=12345, Main thread ID=140242842601216, state: sleeping
Number of rows inserted 1234, updated 567, deleted 89, read 123456
0.50 inserts/s, 0.20 updates/s, 0.05 deletes/s, 5.00 reads/s
----------------------------
END OF INNODB MONITOR OUTPUT
============================
"""

SAMPLE_DEADLOCK_STATUS = """
=====================================
2024-01-15 10:30:45 0x7f8b4c0a1700 INNODB MONITOR OUTPUT
=====================================
------------------------
LATEST DETECTED DEADLOCK
------------------------
2024-01-15 10:25:30 0x7f8b4c0a1700
*** (1) TRANSACTION:
TRANSACTION 421234567890100, ACTIVE 5 sec starting index read
mysql tables in use 1, locked 1
LOCK WAIT 3 lock struct(s), heap size 1136, 2 row lock(s)
MySQL thread id 100, OS thread handle 140242842601216, query id 1000 localhost root updating
UPDATE accounts SET balance = balance - 100 WHERE id = 1
*** (1) WAITING FOR THIS LOCK TO BE GRANTED:
RECORD LOCKS space id 2 page no 3 n bits 72 index PRIMARY of table `test`.`accounts` trx id 421234567890100 lock_mode X locks rec but not gap waiting
*** (2) TRANSACTION:
TRANSACTION 421234567890101, ACTIVE 3 sec starting index read
mysql tables in use 1, locked 1
4 lock struct(s), heap size 1136, 3 row lock(s)
MySQL thread id 101, OS thread handle 140242842601217, query id 1001 localhost root updating
UPDATE accounts SET balance = balance + 100 WHERE id = 2
*** (2) HOLDS THE LOCK(S):
RECORD LOCKS space id 2 page no 3 n bits 72 index PRIMARY of table `test`.`accounts` trx id 421234567890101 lock_mode X locks rec but not gap
*** (2) WAITING FOR THIS LOCK TO BE GRANTED:
RECORD LOCKS space id 2 page no 4 n bits 72 index PRIMARY of table `test`.`accounts` trx id 421234567890101 lock_mode X locks rec but not gap waiting
*** WE ROLL BACK TRANSACTION (1)
------------
TRANSACTIONS
------------
Trx id counter 123456789
Purge done for trx's n:o < 123456780 undo n:o < 50000
History list length 150000
--------
FILE I/O
--------
Pending normal aio reads: 0, aio writes: 0
---
LOG
---
Log sequence number 1234567890
Last checkpoint at  1234567600
----------------------
BUFFER POOL AND MEMORY
----------------------
Buffer pool size   8192
Free buffers       1024
Database pages     7000
Modified db pages  500
Buffer pool hit rate 980 / 1000
--------------
ROW OPERATIONS
--------------
0 queries inside InnoDB, 0 queries in queue
Number of rows inserted 0, updated 0, deleted 0, read 0
0.00 inserts/s, 0.00 updates/s, 0.00 deletes/s, 0.00 reads/s
----------------------------
END OF INNODB MONITOR OUTPUT
============================
"""


class FakeStatusSource:
    """
    内存中的诊断查询协作方

    responses 为 SQL → 返回值；返回值为异常实例时抛出该异常。
    """

    def __init__(self, responses: Dict[str, Any]):
        self.responses = dict(responses)
        self.calls: List[str] = []

    async def query(self, sql: str) -> Any:
        self.calls.append(sql)
        response = self.responses.get(sql)
        if isinstance(response, Exception):
            raise response
        return response

    def count(self, sql: str) -> int:
        return self.calls.count(sql)


class ManualClock:
    """可手动推进的测试时钟"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="function")
def sample_innodb_status() -> str:
    """完整的 InnoDB 状态输出样例"""
    return SAMPLE_INNODB_STATUS


@pytest.fixture(scope="function")
def sample_deadlock_status() -> str:
    """包含死锁段落的 InnoDB 状态输出样例"""
    return SAMPLE_DEADLOCK_STATUS


@pytest.fixture(scope="function")
def modern_replication_row() -> Dict[str, Any]:
    """使用新字段名的复制状态行（MySQL 8.0.22+）"""
    return {
        "Replica_IO_State": "Waiting for source to send event",
        "Source_Host": "primary.example.com",
        "Source_User": "repl",
        "Source_Port": 3306,
        "Source_Log_File": "binlog.000042",
        "Read_Source_Log_Pos": 123456,
        "Relay_Log_File": "relay.000007",
        "Relay_Log_Pos": 4567,
        "Relay_Source_Log_File": "binlog.000042",
        "Replica_IO_Running": "Yes",
        "Replica_SQL_Running": "Yes",
        "Exec_Source_Log_Pos": 123400,
        "Seconds_Behind_Source": 2,
        "Last_IO_Errno": 0,
        "Last_IO_Error": "",
        "Last_SQL_Errno": 0,
        "Last_SQL_Error": "",
        "Replica_SQL_Running_State": "Replica has read all relay log; waiting for more updates",
        "Retrieved_Gtid_Set": "",
        "Executed_Gtid_Set": "",
        "Auto_Position": 0,
    }


@pytest.fixture(scope="function")
def legacy_replication_row() -> Dict[str, Any]:
    """使用旧字段名的复制状态行（MySQL 5.7 / MariaDB）"""
    return {
        "Slave_IO_State": "Waiting for source to send event",
        "Master_Host": "primary.example.com",
        "Master_User": "repl",
        "Master_Port": 3306,
        "Master_Log_File": "binlog.000042",
        "Read_Master_Log_Pos": 123456,
        "Relay_Log_File": "relay.000007",
        "Relay_Log_Pos": 4567,
        "Relay_Master_Log_File": "binlog.000042",
        "Slave_IO_Running": "Yes",
        "Slave_SQL_Running": "Yes",
        "Exec_Master_Log_Pos": 123400,
        "Seconds_Behind_Master": 2,
        "Last_IO_Errno": 0,
        "Last_IO_Error": "",
        "Last_SQL_Errno": 0,
        "Last_SQL_Error": "",
        "Slave_SQL_Running_State": "Replica has read all relay log; waiting for more updates",
        "Retrieved_Gtid_Set": "",
        "Executed_Gtid_Set": "",
        "Auto_Position": 0,
    }


@pytest.fixture(scope="function")
def status_factory() -> Callable[..., EngineStatus]:
    """
    构造引擎状态的工厂，默认值即"完美"指标：
    历史列表 1000、命中率 99、检查点年龄 50%、挂起 I/O 5+5、无长信号量等待
    """
    def factory(
        history_list_length: int = 1000,
        hit_rate: float = 99.0,
        checkpoint_age_percent: float = 50.0,
        pending_reads: int = 5,
        pending_writes: int = 5,
        semaphore_waits: Optional[List[float]] = None,
        purge_lag: int = 0,
        dirty_pages: int = 0,
        health_score: int = 100
    ) -> EngineStatus:
        return EngineStatus(
            version="8.0.35",
            transactions=TransactionSection(history_list_length=history_list_length, purge_lag=purge_lag),
            buffer_pool=BufferPoolSection(hit_rate=hit_rate, dirty_pages=dirty_pages),
            log=LogSection(checkpoint_age_percent=checkpoint_age_percent),
            io=IOSection(pending_reads=pending_reads, pending_writes=pending_writes),
            semaphores=SemaphoreSection(long_semaphore_waits=[
                SemaphoreWait(thread_id=i + 1, wait_time=wait, wait_type="Mutex", location="buf0buf.cc:1460")
                for i, wait in enumerate(semaphore_waits or [])
            ]),
            health_score=health_score
        )

    return factory


@pytest.fixture(scope="function")
def manual_clock() -> ManualClock:
    """可手动推进的缓存时钟"""
    return ManualClock()


@pytest.fixture(scope="function")
def log_capture():
    """捕获全局日志记录器输出的条目"""
    from logger import logger

    entries = []
    callback = entries.append
    logger.add_callback(callback)
    yield entries
    logger.remove_callback(callback)


def pytest_configure(config):
    """
    Pytest配置钩子
    """
    # 添加自定义标记
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


def pytest_collection_modifyitems(config, items):
    """
    修改测试项，添加默认标记
    """
    for item in items:
        if not any(mark.name == "unit" for mark in item.iter_markers()):
            item.add_marker(pytest.mark.unit)
