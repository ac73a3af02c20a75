"""
InnoDB 状态解析器

将 SHOW ENGINE INNODB STATUS 输出的自由文本拆分为具名段落，
并按段落独立提取类型化字段，组装为 EngineStatus。

解析特性：
- 段落由上下两行短横线包围的标题行界定，重复标题取最后一次出现
- 每个段落提取器相互独立，缺失段落或字段解析失败时回退到零值默认子记录
- 数字支持千位分隔符与小数点
- 空输入或没有任何可识别段落标题时抛出 MalformedStatusError

@fileoverview InnoDB 状态文本解析
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

import re
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from common_utils import NumberUtils, TimeUtils
from constants import DefaultConfig, SectionHeaders, StringConstants
from error_handler import ErrorHandler
from logger import logger
from type_utils import (
    AdaptiveHashIndexSection, BufferPoolSection, DeadlockInfo, DeadlockSection,
    DeadlockTransaction, EngineStatus, InsertBufferSection, IOSection, IOThreadInfo,
    LockInfo, LogSection, MalformedStatusError, RowOperationsSection, SemaphoreSection,
    SemaphoreWait, TransactionSection, TransactionStates
)

_DASH_LINE = re.compile(r"^-{3,}\s*$")
_RULE_LINE = re.compile(r"^[-=]{3,}\s*$")
_DEADLOCK_TRX = re.compile(r"^\*\*\* \((\d+)\) TRANSACTION:", re.MULTILINE)
_LOCK_HEADER = re.compile(r"^\*\*\* \(\d+\) (HOLDS THE LOCK\(S\)|WAITING FOR THIS LOCK TO BE GRANTED):")
_SEMAPHORE_WAIT = re.compile(
    r"--Thread (\d+) has waited at (\S+) line (\d+) for (" + NumberUtils.NUMBER_PATTERN + r") seconds the semaphore:"
)


class StatusParser:
    """
    InnoDB 状态解析器

    无状态，可在多个调用方之间共享。log_capacity（字节）用于在输出未给出
    最大检查点年龄时计算检查点年龄百分比。
    """

    def parse(self, raw_text: str, version: str, log_capacity: Optional[int] = None) -> EngineStatus:
        """
        解析引擎状态文本

        Args:
            raw_text: SHOW ENGINE INNODB STATUS 的 Status 列文本
            version: 服务器版本字符串
            log_capacity: 重做日志总容量（字节），可选

        Returns:
            EngineStatus，health_score 为 0，由评分器稍后写入

        Raises:
            MalformedStatusError: 输入为空或不含任何可识别段落标题
        """
        if not raw_text or not raw_text.strip():
            raise MalformedStatusError(StringConstants.MSG_EMPTY_STATUS)

        sections = self.split_sections(raw_text)
        if not any(header in sections for header in SectionHeaders.KNOWN):
            raise MalformedStatusError(StringConstants.MSG_NO_SECTIONS)

        missing = [h for h in SectionHeaders.KNOWN if h not in sections]
        if missing:
            logger.debug(
                "Sections absent from status output, using defaults",
                StringConstants.LOG_CATEGORY_PARSER,
                {"missing": missing}
            )

        def section(header: str) -> str:
            return sections.get(header, "")

        insert_buffer_text = section(SectionHeaders.INSERT_BUFFER)

        return EngineStatus(
            timestamp=datetime.now(),
            version=version,
            uptime=NumberUtils.search_int(r"Per second averages calculated from the last {num} seconds", raw_text),
            transactions=ErrorHandler.run_section(
                SectionHeaders.TRANSACTIONS,
                lambda: self._parse_transactions(section(SectionHeaders.TRANSACTIONS)),
                TransactionSection
            ),
            deadlocks=ErrorHandler.run_section(
                SectionHeaders.LATEST_DETECTED_DEADLOCK,
                lambda: self._parse_deadlocks(section(SectionHeaders.LATEST_DETECTED_DEADLOCK)),
                DeadlockSection
            ),
            buffer_pool=ErrorHandler.run_section(
                SectionHeaders.BUFFER_POOL,
                lambda: self._parse_buffer_pool(section(SectionHeaders.BUFFER_POOL)),
                BufferPoolSection
            ),
            io=ErrorHandler.run_section(
                SectionHeaders.FILE_IO,
                lambda: self._parse_io(section(SectionHeaders.FILE_IO)),
                IOSection
            ),
            insert_buffer=ErrorHandler.run_section(
                "INSERT BUFFER",
                lambda: self._parse_insert_buffer(insert_buffer_text),
                InsertBufferSection
            ),
            adaptive_hash_index=ErrorHandler.run_section(
                "ADAPTIVE HASH INDEX",
                lambda: self._parse_adaptive_hash_index(insert_buffer_text),
                AdaptiveHashIndexSection
            ),
            log=ErrorHandler.run_section(
                SectionHeaders.LOG,
                lambda: self._parse_log(section(SectionHeaders.LOG), log_capacity),
                LogSection
            ),
            row_operations=ErrorHandler.run_section(
                SectionHeaders.ROW_OPERATIONS,
                lambda: self._parse_row_operations(section(SectionHeaders.ROW_OPERATIONS)),
                RowOperationsSection
            ),
            semaphores=ErrorHandler.run_section(
                SectionHeaders.SEMAPHORES,
                lambda: self._parse_semaphores(section(SectionHeaders.SEMAPHORES)),
                SemaphoreSection
            ),
            health_score=0
        )

    @staticmethod
    def split_sections(raw_text: str) -> Dict[str, str]:
        """
        按标题块拆分段落

        标题块为三行：短横线行、标题行、短横线（或等号）行。段落正文延续到下一个
        标题块之前。未知标题同样作为分隔符，但其内容不被任何提取器使用。
        标题块的闭合线不能再作为下一个标题块的开头线，因此单行正文不会被误认作标题。
        """
        lines = raw_text.splitlines()
        headers: List[Tuple[int, str]] = []
        closing_rules: Set[int] = set()

        i = 1
        while i < len(lines) - 1:
            title = lines[i].strip()
            if (title and not _RULE_LINE.match(title)
                    and i - 1 not in closing_rules
                    and _DASH_LINE.match(lines[i - 1].strip())
                    and _RULE_LINE.match(lines[i + 1].strip())):
                headers.append((i, title))
                closing_rules.add(i + 1)
                i += 2
                continue
            i += 1

        sections: Dict[str, str] = {}
        for index, (line_no, title) in enumerate(headers):
            end = headers[index + 1][0] - 1 if index + 1 < len(headers) else len(lines)
            # 重复标题时后出现的覆盖先出现的
            sections[title] = "\n".join(lines[line_no + 2:end])

        return sections

    def _parse_transactions(self, text: str) -> TransactionSection:
        if not text:
            return TransactionSection()

        active = len(re.findall(r"\bACTIVE\b", text))
        prepared = len(re.findall(r"\bACTIVE \(PREPARED\)", text))
        committed = len(re.findall(r"COMMITTED IN MEMORY", text))

        ages = [
            NumberUtils.parse_int(m)
            for m in re.findall(r"\bACTIVE (?:\(PREPARED\) )?(" + NumberUtils.NUMBER_PATTERN + r") sec", text)
        ]

        return TransactionSection(
            history_list_length=NumberUtils.search_int(r"History list length\s+{num}", text),
            active_transactions=active,
            purge_lag=NumberUtils.search_int(r"Purge done for trx's n:o < \S+ undo n:o < {num}", text),
            oldest_active_transaction_age=max(ages) if ages else 0,
            trx_id_counter=NumberUtils.search_int(r"Trx id counter\s+{num}", text),
            transaction_states=TransactionStates(
                active=active - prepared,
                prepared=prepared,
                committed=committed
            )
        )

    def _parse_deadlocks(self, text: str) -> DeadlockSection:
        if not text or not text.strip():
            return DeadlockSection()

        markers = list(_DEADLOCK_TRX.finditer(text))
        victim_match = re.search(r"\*\*\* WE ROLL BACK TRANSACTION \((\d+)\)", text)
        if not markers and not victim_match:
            return DeadlockSection()

        timestamp = None
        timestamp_match = re.search(r"(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})", text)
        if timestamp_match:
            timestamp = TimeUtils.parse_datetime(timestamp_match.group(1))

        transactions = []
        for index, marker in enumerate(markers):
            end = markers[index + 1].start() if index + 1 < len(markers) else len(text)
            block = text[marker.end():end]
            if victim_match and marker.start() < victim_match.start() < end:
                block = text[marker.end():victim_match.start()]
            transactions.append(self._parse_deadlock_transaction(marker.group(1), block))

        return DeadlockSection(
            latest_deadlock=DeadlockInfo(
                timestamp=timestamp,
                transactions=transactions,
                victim=victim_match.group(1) if victim_match else ""
            ),
            deadlock_count=1
        )

    def _parse_deadlock_transaction(self, ordinal: str, block: str) -> DeadlockTransaction:
        """解析死锁中单个事务块"""
        lines = block.splitlines()

        trx_match = re.search(r"TRANSACTION (\w+)", block)
        thread_match = re.search(r"MySQL thread id (\d+)", block)

        query_lines: List[str] = []
        locks_held: List[LockInfo] = []
        locks_waiting: List[LockInfo] = []
        target: Optional[List[LockInfo]] = None
        in_query = False

        for line in lines:
            stripped = line.strip()
            if not stripped:
                continue

            lock_header = _LOCK_HEADER.match(stripped)
            if lock_header:
                in_query = False
                target = locks_held if lock_header.group(1).startswith("HOLDS") else locks_waiting
                continue

            if stripped.startswith("MySQL thread id"):
                in_query = True
                continue

            if in_query and not stripped.startswith("***"):
                query_lines.append(stripped)
            elif target is not None and (stripped.startswith("RECORD LOCKS") or stripped.startswith("TABLE LOCK")):
                target.append(self._parse_lock(stripped))

        return DeadlockTransaction(
            id=ordinal,
            transaction_id=trx_match.group(1) if trx_match else "",
            thread_id=int(thread_match.group(1)) if thread_match else 0,
            query=" ".join(query_lines),
            locks_held=locks_held,
            locks_waiting=locks_waiting
        )

    @staticmethod
    def _parse_lock(line: str) -> LockInfo:
        table_match = re.search(r"table (\S+)", line)
        index_match = re.search(r"index (\S+) of table", line)
        mode_match = re.search(r"lock[_ ]mode (\S+)", line)

        return LockInfo(
            table=table_match.group(1).replace("`", "") if table_match else "",
            index=index_match.group(1).replace("`", "") if index_match else None,
            lock_mode=mode_match.group(1) if mode_match else "",
            lock_type="RECORD" if line.startswith("RECORD LOCKS") else "TABLE"
        )

    def _parse_buffer_pool(self, text: str) -> BufferPoolSection:
        if not text:
            return BufferPoolSection()

        total_size = NumberUtils.search_int(r"Buffer pool size\s+{num}", text)
        if not total_size:
            total_memory = NumberUtils.search_int(r"Total (?:large )?memory allocated\s+{num}", text)
            total_size = total_memory // DefaultConfig.PAGE_SIZE_BYTES

        database_pages = NumberUtils.search_int(r"Database pages\s+{num}", text)
        dirty_pages = NumberUtils.search_int(r"Modified db pages\s+{num}", text)

        hit_rate = 0.0
        hit_match = re.search(r"Buffer pool hit rate (\d+) / (\d+)", text)
        if hit_match:
            hits, total = int(hit_match.group(1)), int(hit_match.group(2))
            hit_rate = hits / total * 100 if total > 0 else 0.0
        elif "No buffer pool page gets" in text:
            # 统计窗口内没有页请求，不存在未命中
            hit_rate = 100.0

        pending_writes = 0
        pending_writes_match = re.search(r"Pending writes:([^\n]*)", text)
        if pending_writes_match:
            pending_writes = NumberUtils.sum_numbers(pending_writes_match.group(1))

        lru_length = NumberUtils.search_int(r"LRU len:\s*{num}", text, default=database_pages)

        return BufferPoolSection(
            total_size=total_size,
            free_pages=NumberUtils.search_int(r"Free buffers\s+{num}", text),
            database_pages=database_pages,
            dirty_pages=dirty_pages,
            modified_db_pages=dirty_pages,
            hit_rate=hit_rate,
            reads_from_disk=NumberUtils.search_float(r"{num} reads/s", text),
            pending_reads=NumberUtils.search_int(r"Pending reads\s+{num}", text),
            pending_writes=pending_writes,
            lru_list_length=lru_length,
            flush_list_length=dirty_pages,
            pages_read=NumberUtils.search_int(r"Pages read {num}", text),
            pages_created=NumberUtils.search_int(r"Pages read \S+ created {num}", text),
            pages_written=NumberUtils.search_int(r"Pages read \S+ created \S+ written {num}", text)
        )

    def _parse_io(self, text: str) -> IOSection:
        if not text:
            return IOSection()

        threads = [
            IOThreadInfo(id=int(m.group(1)), type=m.group(3), state=m.group(2).strip())
            for m in re.finditer(r"I/O thread (\d+) state: (.+?) \(([^)]+)\)\s*$", text, re.MULTILINE)
        ]

        pending_fsyncs = 0
        fsync_match = re.search(r"Pending flushes \(fsync\)([^\n]*)", text)
        if fsync_match:
            pending_fsyncs = NumberUtils.sum_numbers(fsync_match.group(1))
        else:
            pending_fsyncs = NumberUtils.search_int(r"Pending fsyncs:\s*{num}", text)

        return IOSection(
            pending_reads=self._pending_aio(r"Pending normal aio reads:", text),
            pending_writes=self._pending_aio(r"aio writes:", text),
            pending_fsyncs=pending_fsyncs,
            reads_per_second=NumberUtils.search_float(r"{num} reads/s", text),
            writes_per_second=NumberUtils.search_float(r"{num} writes/s", text),
            fsyncs_per_second=NumberUtils.search_float(r"{num} fsyncs/s", text),
            os_file_reads=NumberUtils.search_int(r"{num} OS file reads", text),
            os_file_writes=NumberUtils.search_int(r"{num} OS file writes", text),
            os_fsyncs=NumberUtils.search_int(r"{num} OS fsyncs", text),
            io_threads=threads
        )

    @staticmethod
    def _pending_aio(label: str, text: str) -> int:
        """挂起 aio 计数，MySQL 8 输出为每线程列表，取总和"""
        match = re.search(label + r"\s*(\[[^\]]*\]|\d+)", text)
        if not match:
            return 0
        return NumberUtils.sum_numbers(match.group(1))

    def _parse_insert_buffer(self, text: str) -> InsertBufferSection:
        if not text:
            return InsertBufferSection()

        ibuf_match = re.search(
            r"Ibuf: size (\d+), free list len (\d+), seg size (\d+), (\d+) merges", text
        )

        return InsertBufferSection(
            size=int(ibuf_match.group(1)) if ibuf_match else 0,
            free_list_length=int(ibuf_match.group(2)) if ibuf_match else 0,
            segment_size=int(ibuf_match.group(3)) if ibuf_match else 0,
            merges=int(ibuf_match.group(4)) if ibuf_match else 0,
            merged_operations=self._operation_counts("merged operations:", text),
            discarded_operations=self._operation_counts("discarded operations:", text)
        )

    @staticmethod
    def _operation_counts(label: str, text: str) -> Dict[str, int]:
        match = re.search(re.escape(label) + r"\s*\n([^\n]*)", text)
        if not match:
            return {}
        return {
            name.replace(" ", "_"): int(count)
            for name, count in re.findall(r"([a-z][a-z ]*?) (\d+)", match.group(1))
        }

    def _parse_adaptive_hash_index(self, text: str) -> AdaptiveHashIndexSection:
        if not text:
            return AdaptiveHashIndexSection()

        partitions = re.findall(r"Hash table size (\d+), node heap has (\d+) buffer", text)

        return AdaptiveHashIndexSection(
            hash_table_size=sum(int(size) for size, _ in partitions),
            node_heap_buffers=sum(int(buffers) for _, buffers in partitions),
            hash_searches_per_second=NumberUtils.search_float(r"{num} hash searches/s", text),
            non_hash_searches_per_second=NumberUtils.search_float(r"{num} non-hash searches/s", text)
        )

    def _parse_log(self, text: str, log_capacity: Optional[int]) -> LogSection:
        if not text:
            return LogSection()

        lsn = NumberUtils.search_int(r"Log sequence number\s+{num}", text)
        last_checkpoint = NumberUtils.search_int(r"Last checkpoint at\s+{num}", text)
        checkpoint_age = max(0, lsn - last_checkpoint)

        max_checkpoint_age = NumberUtils.search_int(r"Max checkpoint age\s+{num}", text)
        capacity = max_checkpoint_age or log_capacity or 0
        checkpoint_age_percent = round(checkpoint_age / capacity * 100, 2) if capacity > 0 else 0.0

        pending_match = re.search(r"(\d+) pending log (?:flushes|writes), (\d+) pending chkp writes", text)

        return LogSection(
            log_sequence_number=lsn,
            log_flushed_up_to=NumberUtils.search_int(r"Log flushed up to\s+{num}", text),
            pages_flushed_up_to=NumberUtils.search_int(r"Pages flushed up to\s+{num}", text),
            last_checkpoint_lsn=last_checkpoint,
            checkpoint_age=checkpoint_age,
            max_checkpoint_age=max_checkpoint_age,
            checkpoint_age_percent=checkpoint_age_percent,
            pending_log_writes=int(pending_match.group(1)) if pending_match else 0,
            pending_checkpoint_writes=int(pending_match.group(2)) if pending_match else 0,
            log_io_per_second=NumberUtils.search_float(r"{num} log i/o's/second", text)
        )

    def _parse_row_operations(self, text: str) -> RowOperationsSection:
        if not text:
            return RowOperationsSection()

        counters = re.search(
            r"Number of rows inserted ({n}), updated ({n}), deleted ({n}), read ({n})".replace(
                "{n}", NumberUtils.NUMBER_PATTERN
            ),
            text
        )

        return RowOperationsSection(
            rows_inserted=NumberUtils.parse_int(counters.group(1)) if counters else 0,
            rows_updated=NumberUtils.parse_int(counters.group(2)) if counters else 0,
            rows_deleted=NumberUtils.parse_int(counters.group(3)) if counters else 0,
            rows_read=NumberUtils.parse_int(counters.group(4)) if counters else 0,
            inserts_per_second=NumberUtils.search_float(r"{num} inserts/s", text),
            updates_per_second=NumberUtils.search_float(r"{num} updates/s", text),
            deletes_per_second=NumberUtils.search_float(r"{num} deletes/s", text),
            reads_per_second=NumberUtils.search_float(r"{num} reads/s", text),
            queries_inside=NumberUtils.search_int(r"{num} queries inside InnoDB", text),
            queries_queued=NumberUtils.search_int(r"{num} queries in queue", text),
            read_views_open=NumberUtils.search_int(r"{num} read views open inside InnoDB", text)
        )

    def _parse_semaphores(self, text: str) -> SemaphoreSection:
        if not text:
            return SemaphoreSection()

        rw_waits = rw_rounds = rw_os_waits = 0
        for spins, rounds, os_waits in re.findall(
            r"RW-\w+ spins (\d+), rounds (\d+), OS waits (\d+)", text
        ):
            rw_waits += int(spins)
            rw_rounds += int(rounds)
            rw_os_waits += int(os_waits)

        mutex_match = re.search(r"Mutex spin waits (\d+), rounds (\d+), OS waits (\d+)", text)

        return SemaphoreSection(
            reservation_count=NumberUtils.search_int(r"reservation count {num}", text),
            signal_count=NumberUtils.search_int(r"signal count {num}", text),
            mutex_waits=int(mutex_match.group(1)) if mutex_match else 0,
            mutex_spin_rounds=int(mutex_match.group(2)) if mutex_match else 0,
            mutex_os_waits=int(mutex_match.group(3)) if mutex_match else 0,
            rw_lock_waits=rw_waits,
            rw_lock_spin_rounds=rw_rounds,
            rw_lock_os_waits=rw_os_waits,
            long_semaphore_waits=self._parse_semaphore_waits(text)
        )

    @staticmethod
    def _parse_semaphore_waits(text: str) -> List[SemaphoreWait]:
        """解析 --Thread N has waited ... 长等待记录，等待类型取下一行首个词组"""
        waits = []
        lines = text.splitlines()
        for i, line in enumerate(lines):
            match = _SEMAPHORE_WAIT.search(line)
            if not match:
                continue
            wait_type = ""
            if i + 1 < len(lines):
                type_match = re.match(r"\s*(\S+?)(?: on | at |$)", lines[i + 1])
                wait_type = type_match.group(1) if type_match else ""
            waits.append(SemaphoreWait(
                thread_id=int(match.group(1)),
                wait_time=NumberUtils.parse_float(match.group(4)),
                wait_type=wait_type,
                location=f"{match.group(2)}:{match.group(3)}"
            ))
        return waits
