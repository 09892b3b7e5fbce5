"""Plan Domain Model

plan.json 是唯一事实来源；plan.md 只是派生视图。
模型只接受声明过的字段：未知字段（包括 "__proto__" 之类的注入键）在校验时被丢弃，
每次校验都逐字段构造全新的模型实例，不会与输入对象或其他实例共享可变状态。
"""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator

from .enums import MigrationStatus, PhaseStatus, TaskSize, TaskStatus

# 必须等于 config.PLAN_SCHEMA_VERSION（test_models 校验两者一致）
SchemaVersion = Literal["1.0.0"]


def _require_utf8(value: str) -> str:
    """拒绝无法编码为 UTF-8 的文本（如 JSON 中的孤立代理项 \\ud800）"""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ValueError(f"text is not encodable as UTF-8: {e.reason}") from e
    return value


# 计划中所有文本字段的类型：摘要计算与写盘都需要合法的 UTF-8
PlanText = Annotated[str, AfterValidator(_require_utf8)]


class Task(BaseModel):
    """Task 数据模型

    id 按约定写作 "<phase>.<n>"，但不要求可解析为数字。
    """

    model_config = ConfigDict(extra="ignore")

    id: PlanText = Field(description="任务 ID，在整个计划内唯一")
    phase: int = Field(description="所属 phase 的 ID（冗余反向引用）")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="任务状态")
    size: TaskSize = Field(default=TaskSize.SMALL, description="工作量估计")
    description: PlanText = Field(description="任务描述")
    depends: list[PlanText] = Field(default_factory=list, description="依赖的任务 ID")
    acceptance: PlanText | None = Field(default=None, description="验收标准")
    files_touched: list[PlanText] = Field(default_factory=list, description="涉及的文件路径（仅供参考）")
    evidence_path: PlanText | None = Field(default=None, description="证据文件路径")
    blocked_reason: PlanText | None = Field(default=None, description="阻塞原因")


class Phase(BaseModel):
    """Phase 数据模型

    tasks 保持存储顺序；展示顺序由渲染器决定，不会回写。
    """

    model_config = ConfigDict(extra="ignore")

    id: int = Field(description="Phase ID，在计划内唯一")
    name: PlanText = Field(description="Phase 名称")
    status: PhaseStatus = Field(default=PhaseStatus.PENDING, description="Phase 状态")
    tasks: list[Task] = Field(default_factory=list, description="任务列表（存储顺序）")


class Plan(BaseModel):
    """Plan 聚合根

    phases 至少包含一个元素；schema_version 必须与支持的版本字面量完全一致。
    updated_at 是非规范元数据：不参与摘要计算，也不渲染到 markdown。
    """

    model_config = ConfigDict(extra="ignore")

    schema_version: SchemaVersion = Field(description="Schema 版本，精确匹配")
    title: PlanText = Field(description="计划标题")
    swarm_id: PlanText = Field(description="Swarm 标识")
    current_phase: int = Field(description="当前活跃的 phase ID")
    migration_status: MigrationStatus | None = Field(
        default=None,
        description="迁移结果标记，仅由迁移引擎设置",
    )
    phases: list[Phase] = Field(min_length=1, description="Phase 列表（至少一个）")
    updated_at: datetime | None = Field(default=None, description="最后保存时间")

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "Plan":
        """phase ID 与 task ID 在计划内必须唯一"""
        phase_ids: set[int] = set()
        task_ids: set[str] = set()
        for phase in self.phases:
            if phase.id in phase_ids:
                raise ValueError(f"duplicate phase id: {phase.id}")
            phase_ids.add(phase.id)
            for task in phase.tasks:
                if task.id in task_ids:
                    raise ValueError(f"duplicate task id: {task.id}")
                task_ids.add(task.id)
        return self

    def find_task(self, task_id: str) -> Task | None:
        """按 ID 在所有 phase 中查找任务"""
        for phase in self.phases:
            for task in phase.tasks:
                if task.id == task_id:
                    return task
        return None

    def find_phase(self, phase_id: int) -> Phase | None:
        """按 ID 查找 phase"""
        for phase in self.phases:
            if phase.id == phase_id:
                return phase
        return None
