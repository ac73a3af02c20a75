"""
复制状态解析器测试

测试新旧字段名解析、健康分类、线程错误、GTID 检测与命令选择

@description 测试 ReplicationParser 的解析行为
@author liyq
@since 1.0.0
"""

from datetime import datetime

import pytest

from constants import StringConstants
from replication_parser import ReplicationParser
from type_utils import HealthStatus, NoStatusDataError, ReplicaType, ReplicationRole


class TestFieldResolution:
    """字段名解析测试"""

    @pytest.fixture(autouse=True)
    def setup(self):
        """每个测试前的设置"""
        self.parser = ReplicationParser()
        yield

    def test_modern_row(self, modern_replication_row):
        """应该解析新字段名"""
        status = self.parser.parse(modern_replication_row, "8.0.35")

        assert status.version == "8.0.35"
        assert status.master_host == "primary.example.com"
        assert status.master_port == 3306
        assert status.master_user == "repl"
        assert status.io_thread.running is True
        assert status.io_thread.state == "Waiting for source to send event"
        assert status.sql_thread.running is True
        assert status.lag_seconds == 2
        assert status.binlog_position.source_log_file == "binlog.000042"
        assert status.binlog_position.read_source_log_pos == 123456
        assert status.binlog_position.exec_source_log_pos == 123400
        assert status.binlog_position.relay_log_file == "relay.000007"
        assert status.binlog_position.relay_log_pos == 4567
        assert status.replica_type == ReplicaType.BINLOG
        assert status.gtid_info is None
        assert status.health_status == HealthStatus.HEALTHY
        assert set(status.field_sources.values()) == {"modern"}

    def test_legacy_row_equivalent_to_modern(self, modern_replication_row, legacy_replication_row):
        """旧字段名的等价行除字段来源外解析结果相同"""
        modern = self.parser.parse(modern_replication_row, "8.0.35")
        legacy = self.parser.parse(legacy_replication_row, "8.0.35")

        exclude = {"timestamp", "field_sources"}
        assert legacy.model_dump(exclude=exclude) == modern.model_dump(exclude=exclude)
        assert set(legacy.field_sources.values()) == {"legacy"}
        assert legacy.field_sources.keys() == modern.field_sources.keys()

    def test_modern_name_preferred_when_both_present(self, modern_replication_row):
        """新旧名称同时存在时取新名称"""
        row = dict(modern_replication_row, Master_Host="old.example.com")

        values, sources = ReplicationParser.resolve_fields(row)

        assert values["source_host"] == "primary.example.com"
        assert sources["source_host"] == "modern"

    def test_list_input_uses_first_row(self, modern_replication_row, legacy_replication_row):
        """多通道结果取第一行"""
        second = dict(legacy_replication_row, Master_Host="other.example.com")

        status = self.parser.parse([modern_replication_row, second], "8.0.35")

        assert status.master_host == "primary.example.com"

    @pytest.mark.parametrize("empty", [None, [], {}, [{}]])
    def test_empty_input_raises(self, empty):
        """没有行时抛出 NoStatusDataError"""
        with pytest.raises(NoStatusDataError):
            self.parser.parse(empty, "8.0.35")


class TestLagAndHealth:
    """延迟与健康分类测试"""

    @pytest.fixture(autouse=True)
    def setup(self):
        """每个测试前的设置"""
        self.parser = ReplicationParser()
        yield

    @pytest.mark.parametrize("value,expected", [
        (None, None),
        ("", None),
        ("NULL", None),
        ("null", None),
        (0, 0),
        ("0", 0),
        (42, 42),
        ("1,200", 1200),
        ("n/a", None),
        ("abc", None),
    ])
    def test_parse_lag(self, value, expected):
        """NULL、空值与缺席为 None，0 表示完全追上"""
        assert ReplicationParser.parse_lag(value) == expected

    @pytest.mark.parametrize("lag,expected", [
        (None, HealthStatus.UNKNOWN),
        (400, HealthStatus.CRITICAL),
        (120, HealthStatus.WARNING),
        (60, HealthStatus.HEALTHY),
        (2, HealthStatus.HEALTHY),
    ])
    def test_health_by_lag(self, modern_replication_row, lag, expected):
        """线程运行时按延迟分类"""
        row = dict(modern_replication_row, Seconds_Behind_Source=lag)

        status = self.parser.parse(row, "8.0.35")

        assert status.lag_seconds == lag
        assert status.health_status == expected

    def test_stopped_thread_is_critical(self, modern_replication_row):
        """任一线程停止即为 critical，与延迟无关"""
        row = dict(modern_replication_row, Replica_SQL_Running="No", Replica_SQL_Running_State="")

        status = self.parser.parse(row, "8.0.35")

        assert status.sql_thread.running is False
        assert status.sql_thread.state == StringConstants.THREAD_NOT_RUNNING
        assert status.health_status == HealthStatus.CRITICAL

    def test_thread_error(self, modern_replication_row):
        """错误号非零且消息非空时记录线程错误"""
        row = dict(
            modern_replication_row,
            Last_IO_Errno=2003,
            Last_IO_Error="error connecting to master 'repl@primary:3306'",
            Last_IO_Error_Timestamp="240115 10:25:30"
        )

        status = self.parser.parse(row, "8.0.35")

        assert status.last_io_error is not None
        assert status.last_io_error.error_number == 2003
        assert status.last_io_error.thread_type == "io"
        assert status.last_io_error.timestamp == datetime(2024, 1, 15, 10, 25, 30)
        assert status.io_thread.last_error_number == 2003
        assert status.last_sql_error is None
        assert status.health_status == HealthStatus.CRITICAL

    def test_zero_errno_is_not_an_error(self, modern_replication_row):
        """错误号为 0 时即使有消息也不算错误"""
        row = dict(modern_replication_row, Last_SQL_Errno=0, Last_SQL_Error="stale message")

        status = self.parser.parse(row, "8.0.35")

        assert status.last_sql_error is None


class TestGtidDetection:
    """GTID 模式检测测试"""

    @pytest.fixture(autouse=True)
    def setup(self):
        """每个测试前的设置"""
        self.parser = ReplicationParser()
        yield

    def test_gtid_sets_enable_gtid_mode(self, modern_replication_row):
        """GTID 集合非空即为 GTID 模式"""
        row = dict(
            modern_replication_row,
            Retrieved_Gtid_Set="3e11fa47-71ca-11e1-9e33-c80aa9429562:1-5",
            Executed_Gtid_Set="3e11fa47-71ca-11e1-9e33-c80aa9429562:1-5",
            Auto_Position=1
        )

        status = self.parser.parse(row, "8.0.35")

        assert status.replica_type == ReplicaType.GTID
        assert status.gtid_info.gtid_mode is True
        assert status.gtid_info.auto_position is True
        assert status.gtid_info.executed_gtid_set.endswith(":1-5")

    def test_auto_position_alone_enables_gtid_mode(self, modern_replication_row):
        """仅启用自动定位也视为 GTID 模式"""
        assert ReplicationParser.detect_gtid_mode(dict(modern_replication_row, Auto_Position="1")) is True
        assert ReplicationParser.detect_gtid_mode(modern_replication_row) is False

    @pytest.mark.parametrize("using_gtid,expected", [
        ("Current_Pos", True),
        ("Slave_Pos", True),
        ("No", False),
    ])
    def test_mariadb_using_gtid(self, legacy_replication_row, using_gtid, expected):
        """MariaDB 的 Using_Gtid 字段"""
        row = dict(legacy_replication_row, Using_Gtid=using_gtid)

        assert ReplicationParser.detect_gtid_mode(row) is expected


class TestCommandSelection:
    """复制状态命令选择测试"""

    @pytest.mark.parametrize("version,command,terminology", [
        ("8.0.35", StringConstants.SQL_REPLICA_STATUS, "REPLICA"),
        ("5.7.44-log", StringConstants.SQL_REPLICA_STATUS, "REPLICA"),
        ("10.6.12-MariaDB-log", StringConstants.SQL_SLAVE_STATUS, "SLAVE"),
        ("", StringConstants.SQL_REPLICA_STATUS, "REPLICA"),
    ])
    def test_command_by_version(self, version, command, terminology):
        """MariaDB 用 SLAVE 命令，其余先尝试 REPLICA"""
        assert ReplicationParser.replication_status_command(version) == command
        assert ReplicationParser.replica_terminology(version) == terminology


class TestUnparsableFields:
    """无法解析的单个字段回退默认值测试"""

    @pytest.fixture(autouse=True)
    def setup(self):
        """每个测试前的设置"""
        self.parser = ReplicationParser()
        yield

    def test_unparsable_lag_is_unknown(self, modern_replication_row):
        """延迟无法解析时视为未知，而不是 0"""
        row = dict(modern_replication_row, Seconds_Behind_Source="n/a")

        status = self.parser.parse(row, "8.0.35")

        assert status.lag_seconds is None
        assert status.health_status == HealthStatus.UNKNOWN

    def test_unparsable_port_and_positions_default_to_zero(self, modern_replication_row):
        """端口与日志位置无法解析时为 0，其余字段照常解析"""
        row = dict(
            modern_replication_row,
            Source_Port="abc",
            Read_Source_Log_Pos="?",
            Relay_Log_Pos="unknown"
        )

        status = self.parser.parse(row, "8.0.35")

        assert status.master_port == 0
        assert status.binlog_position.read_source_log_pos == 0
        assert status.binlog_position.relay_log_pos == 0
        assert status.binlog_position.exec_source_log_pos == 123400
        assert status.master_host == "primary.example.com"

    def test_unparsable_errno_means_no_error(self, legacy_replication_row):
        """错误号无法解析时按无错误处理"""
        row = dict(legacy_replication_row, Last_IO_Errno="x", Last_IO_Error="something odd")

        status = self.parser.parse(row, "5.7.44")

        assert status.last_io_error is None
        assert status.io_thread.last_error_number is None
        assert status.health_status == HealthStatus.HEALTHY


class TestTopology:
    """复制拓扑解析测试"""

    @pytest.fixture(autouse=True)
    def setup(self):
        """每个测试前的设置"""
        self.parser = ReplicationParser()
        yield

    def test_source_status(self):
        """应该解析二进制日志坐标"""
        source = self.parser.parse_source_status([{
            "File": "binlog.000042",
            "Position": 157,
            "Binlog_Do_DB": "",
            "Binlog_Ignore_DB": "mysql",
            "Executed_Gtid_Set": "3E11FA47-71CA-11E1-9E33-C80AA9429562:1-5",
        }])

        assert source.file == "binlog.000042"
        assert source.position == 157
        assert source.binlog_ignore_db == "mysql"
        assert source.executed_gtid_set == "3E11FA47-71CA-11E1-9E33-C80AA9429562:1-5"

    def test_source_status_without_gtid(self):
        """没有 GTID 集合时为 None，位置无法解析时为 0"""
        source = self.parser.parse_source_status([{"File": "mysql-bin.000003", "Position": "?"}])

        assert source.executed_gtid_set is None
        assert source.position == 0

    def test_no_binary_log_returns_none(self):
        """未启用二进制日志时返回 None"""
        assert self.parser.parse_source_status([]) is None

    def test_connected_replicas_modern_and_legacy(self):
        """SHOW REPLICAS 与 SHOW SLAVE HOSTS 的行解析为相同结构"""
        modern = self.parser.parse_connected_replicas([
            {"Server_Id": 2, "Host": "replica-1", "Port": 3306, "Source_Id": 1, "Replica_UUID": "uuid-2"},
        ])
        legacy = self.parser.parse_connected_replicas([
            {"Server_id": 2, "Host": "replica-1", "Port": 3306, "Master_id": 1, "Slave_UUID": "uuid-2"},
        ])

        assert modern == legacy
        assert modern[0].server_id == 2
        assert modern[0].source_id == 1
        assert modern[0].replica_uuid == "uuid-2"

    def test_connected_replica_defaults(self):
        """MariaDB 行没有 UUID 列，缺少端口时使用默认端口"""
        replicas = self.parser.parse_connected_replicas([
            {"Server_id": 3, "Host": "", "Master_id": 1},
            {"Server_id": 4, "Host": "replica-2", "Port": 3307, "Master_id": 1},
        ])

        assert [r.server_id for r in replicas] == [3, 4]
        assert replicas[0].port == 3306
        assert replicas[0].replica_uuid == ""
        assert replicas[1].port == 3307

    @pytest.mark.parametrize("is_source,is_replica,expected", [
        (True, True, ReplicationRole.BOTH),
        (True, False, ReplicationRole.MASTER),
        (False, True, ReplicationRole.REPLICA),
        (False, False, ReplicationRole.STANDALONE),
    ])
    def test_classify_role(self, is_source, is_replica, expected):
        """按源状态与副本状态判定角色"""
        assert ReplicationParser.classify_role(is_source, is_replica) == expected

    @pytest.mark.parametrize("version,command", [
        ("8.0.35", StringConstants.SQL_REPLICAS),
        ("10.6.12-MariaDB-log", StringConstants.SQL_SLAVE_HOSTS),
    ])
    def test_replica_hosts_command(self, version, command):
        """MariaDB 用 SHOW SLAVE HOSTS，其余先尝试 SHOW REPLICAS"""
        assert ReplicationParser.replica_hosts_command(version) == command
