"""
체크포인트 저장/복원 (JSON)
==========================

to_checkpoint()가 만드는 딕셔너리를 JSON 문자열/파일로 저장하고,
'model' 태그로 클래스를 찾아 다시 복원한다.

    >>> text = dumps(forest)
    >>> restored = loads(text)
"""

import json
import logging
import os
from typing import Any, Dict, Type, Union

from .base import BaseModel
from .decision_tree import DecisionTreeClassifier
from .exceptions import ModelError, RestoreError
from .random_forest import RandomForestClassifier

logger = logging.getLogger(__name__)

MODEL_REGISTRY: Dict[str, Type[BaseModel]] = {
    'DecisionTreeClassifier': DecisionTreeClassifier,
    'RandomForestClassifier': RandomForestClassifier,
}


def register_model(cls: Type[BaseModel]) -> Type[BaseModel]:
    """다른 추정기를 체크포인트 레지스트리에 등록 (데코레이터로도 사용 가능)"""
    MODEL_REGISTRY[cls.__name__] = cls
    return cls


def from_state(state: Dict[str, Any]) -> BaseModel:
    """'model' 태그에 맞는 새 인스턴스를 만들어 복원"""
    if not isinstance(state, dict):
        raise RestoreError("체크포인트는 딕셔너리여야 합니다.")

    name = state.get('model')
    if name not in MODEL_REGISTRY:
        raise RestoreError(f"알 수 없는 모델 타입입니다: {name!r}")

    return MODEL_REGISTRY[name]().from_checkpoint(state)


def dumps(model: BaseModel, indent: Union[int, None] = None) -> str:
    """
    체크포인트를 JSON 문자열로 변환

    Raises
    ------
    ModelError
        트리가 JSON 인코더의 중첩 한도보다 깊은 경우.
        to_checkpoint()의 딕셔너리는 깊이와 무관하게 만들 수 있다.
    """
    state = model.to_checkpoint()
    try:
        return json.dumps(state, ensure_ascii=False, indent=indent)
    except RecursionError as e:
        raise ModelError(f"체크포인트가 너무 깊게 중첩되어 JSON으로 인코딩할 수 없습니다: {e}") from e


def loads(text: str) -> BaseModel:
    try:
        state = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as e:
        raise RestoreError(f"체크포인트 JSON을 읽을 수 없습니다: {e}") from e
    return from_state(state)


def save_checkpoint(model: BaseModel, filepath: Union[str, os.PathLike], indent: int = 2) -> None:
    """모델을 JSON 파일로 저장"""
    text = dumps(model, indent=indent)
    with open(filepath, 'w', encoding='utf-8') as f:
        f.write(text)
    logger.info("Checkpoint saved: %s", filepath)


def load_checkpoint(filepath: Union[str, os.PathLike]) -> BaseModel:
    """JSON 파일에서 모델 복원"""
    with open(filepath, 'r', encoding='utf-8') as f:
        model = loads(f.read())
    logger.info("Checkpoint loaded: %s (%s)", filepath, type(model).__name__)
    return model
