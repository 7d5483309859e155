"""
services/patch.py

부분 수정(PATCH) 공통 함수.

요청 스키마(pydantic)에 실제로 들어 있던 필드만 ORM 객체에 반영한다.
값이 None 으로 "명시적으로" 온 필드는 NULL 로 반영되고,
요청에 없던 필드는 건드리지 않는다.

"""

from enum import Enum

from pydantic import BaseModel


def apply_patch(obj, patch: BaseModel, *, exclude: set[str] | None = None) -> list[str]:
    data = patch.model_dump(exclude_unset=True, exclude=exclude)

    changed: list[str] = []
    for name, value in data.items():
        if not hasattr(obj, name):
            continue
        # 문자열 컬럼에는 Enum 의 값을 저장
        if isinstance(value, Enum):
            value = value.value
        if getattr(obj, name) != value:
            setattr(obj, name, value)
            changed.append(name)
    return changed
