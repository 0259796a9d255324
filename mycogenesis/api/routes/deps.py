"""라우터 공통 의존성"""

from mycogenesis.engine import ServiceCoordinator, get_service_coordinator


def get_coordinator() -> ServiceCoordinator:
    """ServiceCoordinator 싱글톤 (테스트에서는 dependency_overrides로 교체)"""
    return get_service_coordinator()
