"""Integrity Digest Engine 单元测试

测试内容：
1. 摘要确定性、字段集与顺序敏感性
2. 非规范字段（updated_at）不影响摘要
3. 标记提取：缺失 / 多个 / 其他注释风格 / 畸形 / 任意字节
4. 标记嵌入替换已有标记
"""

from datetime import UTC, datetime

import pytest
from swarmplan.core.digest import (
    CANONICAL_PLAN_FIELDS,
    canonical_plan_content,
    compute_plan_digest,
    embed_digest,
    extract_digest,
    format_digest_marker,
    strip_digest_markers,
)
from swarmplan.core.models import MigrationStatus, Plan, TaskStatus


@pytest.fixture
def plan(make_plan, task_factory) -> Plan:
    return Plan.model_validate(
        make_plan(
            phases=[
                {
                    "id": 1,
                    "name": "Phase 1",
                    "status": "in_progress",
                    "tasks": [task_factory("1.1"), task_factory("1.2")],
                }
            ]
        )
    )


class TestComputeDigest:
    """摘要计算测试"""

    def test_stable_across_calls(self, plan):
        """同一计划多次计算结果一致"""
        assert compute_plan_digest(plan) == compute_plan_digest(plan)
        assert compute_plan_digest(plan) == compute_plan_digest(plan.model_copy(deep=True))

    def test_digest_is_hex_token(self, plan):
        """摘要是可嵌入标记的十六进制字符串"""
        digest = compute_plan_digest(plan)
        assert len(digest) == 64
        int(digest, 16)

    def test_updated_at_excluded(self, plan):
        """修改非规范字段不改变摘要"""
        before = compute_plan_digest(plan)
        plan.updated_at = datetime(2026, 1, 1, tzinfo=UTC)
        assert compute_plan_digest(plan) == before
        assert "updated_at" not in canonical_plan_content(plan)

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda p: setattr(p, "title", "Other"),
            lambda p: setattr(p, "swarm_id", "other-swarm"),
            lambda p: setattr(p, "current_phase", 2),
            lambda p: setattr(p, "migration_status", MigrationStatus.MIGRATED),
            lambda p: setattr(p.phases[0], "name", "Renamed"),
            lambda p: setattr(p.phases[0].tasks[0], "status", TaskStatus.COMPLETED),
            lambda p: p.phases[0].tasks[0].depends.append("1.2"),
            lambda p: p.phases[0].tasks[0].files_touched.append("a.py"),
        ],
    )
    def test_canonical_fields_change_digest(self, plan, mutate):
        """规范字段变化必然改变摘要"""
        before = compute_plan_digest(plan)
        mutate(plan)
        assert compute_plan_digest(plan) != before

    def test_task_order_sensitive(self, plan):
        """摘要对存储顺序敏感"""
        before = compute_plan_digest(plan)
        plan.phases[0].tasks.reverse()
        assert compute_plan_digest(plan) != before

    def test_canonical_content_field_order(self, plan):
        """规范内容按固定字段顺序排列，None 字段省略"""
        content = canonical_plan_content(plan)
        assert list(content) == [f for f in CANONICAL_PLAN_FIELDS if f != "migration_status"]


class TestExtractDigest:
    """标记提取测试"""

    def test_round_trip_marker(self):
        """格式化后的标记可被提取"""
        assert extract_digest(format_digest_marker("abc123") + "\n# Title\n") == "abc123"

    def test_missing_marker(self):
        """无标记的早期文档返回 None"""
        assert extract_digest("# Test Plan\nSwarm: x\nPhase: 1 [IN PROGRESS]") is None
        assert extract_digest("") is None

    def test_first_well_formed_marker_wins(self):
        """多个标记时取第一个格式正确的"""
        md = "<!-- PLAN_HASH: -->\n<!-- PLAN_HASH: FIRST -->\n<!-- PLAN_HASH: SECOND -->\n# T"
        assert extract_digest(md) == "FIRST"

    @pytest.mark.parametrize(
        "markdown",
        [
            "/* PLAN_HASH: hash */\n# T",
            "// PLAN_HASH: hash\n# T",
            "<!-- PLAN_HASH: hash -- >\n# T",
            "<!-- PLAN_HASH: hash\n# T",
            "<!-- PLAN_HASH hash -->\n# T",
            "- [ ] 1.1: see <!-- PLAN_HASH: inline -->",
        ],
    )
    def test_other_styles_treated_as_absent(self, markdown):
        """其他注释风格、截断或非行首的标记视为缺失"""
        assert extract_digest(markdown) is None

    def test_compact_marker_tolerated(self):
        """无空格的紧凑写法也可识别"""
        assert extract_digest("<!--PLAN_HASH:hash--># Title") == "hash"

    @pytest.mark.parametrize(
        "raw",
        [b"\xff\xfe\x00\x01", b"\x80" * 64, "\x00\x00".encode(), b"<!-- PLAN_HASH: \xff -->"],
    )
    def test_never_raises_on_bytes(self, raw):
        """任意字节内容都不会抛出"""
        assert extract_digest(raw) is None

    def test_bytes_with_valid_marker(self):
        """字节输入也能提取标记"""
        assert extract_digest(b"<!-- PLAN_HASH: deadbeef -->\n# T") == "deadbeef"


class TestEmbedDigest:
    """标记嵌入测试"""

    def test_marker_is_first_line(self):
        """标记写在第一行"""
        md = embed_digest("# Title\n", "abc")
        assert md.splitlines()[0] == "<!-- PLAN_HASH: abc -->"
        assert md.endswith("# Title\n")

    def test_existing_leading_markers_replaced(self):
        """已有的开头标记被替换，只保留一个"""
        md = embed_digest("<!-- PLAN_HASH: old1 -->\n<!-- PLAN_HASH: old2 -->\n# Title\n", "new")
        assert md == "<!-- PLAN_HASH: new -->\n# Title\n"
        assert md.count("PLAN_HASH") == 1

    def test_strip_only_leading_markers(self):
        """只移除开头连续的标记行"""
        body = "# Title\n<!-- PLAN_HASH: keep -->\n"
        assert strip_digest_markers("<!-- PLAN_HASH: x -->\n" + body) == body
