from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

ReportMode = Literal["structured", "raw", "trn"]
RetrievalStrategy = Literal["triple", "direct"]


class TimeWindow(BaseModel):
    start_time: int
    end_time: int

    @model_validator(mode="after")
    def _check_order(self) -> "TimeWindow":
        if self.start_time > self.end_time:
            raise ValueError("start_time must not be after end_time.")
        return self

    def as_query(self) -> Dict[str, int]:
        return {"start_time": self.start_time, "end_time": self.end_time}


class ReportOptions(BaseModel):
    filters: List[str] = Field(default_factory=list)
    stat_pattern_keys: List[str] = Field(default_factory=list)
    mode: ReportMode = "structured"
    retrieval_strategy: RetrievalStrategy = "triple"


class PlayerReport(BaseModel):
    account_id: str
    start_time: int
    end_time: int
    mode: ReportMode
    strategy: RetrievalStrategy
    filters: List[str] = Field(default_factory=list)
    stats: Dict[str, Any] = Field(default_factory=dict)


class HistoryStepModel(BaseModel):
    end_time: int
    end_time_formatted: str
    stat_count: int
    latest_modified: Optional[int] = None
    differences: Dict[str, Union[int, float, str]] = Field(default_factory=dict)


class HistoryReport(BaseModel):
    account_id: str
    stop_time: int
    steps: List[HistoryStepModel] = Field(default_factory=list)
