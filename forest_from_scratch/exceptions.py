"""
모델 예외 계층
==============

모든 추정기가 공유하는 예외 클래스.

- ShapeError: 입력 행렬/벡터의 형태 오류 (길이 불일치, 빈 학습셋, 들쭉날쭉한 행)
- NotFittedError: 학습 전에 predict 등을 호출
- RestoreError: 체크포인트 복원 실패

기존 코드와의 호환을 위해 ValueError / RuntimeError도 함께 상속한다.
"""


class ModelError(Exception):
    """forest_from_scratch 예외의 기본 클래스"""


class ShapeError(ModelError, ValueError):
    """X / y 형태가 올바르지 않을 때 발생"""


class NotFittedError(ModelError, RuntimeError):
    """학습되지 않은 모델을 사용하려 할 때 발생"""


class RestoreError(ModelError, ValueError):
    """체크포인트가 없거나 손상되었을 때 발생"""
