"""
devopsfetch 오류 분류

모든 컴포넌트 오류는 InspectorError를 상속하며,
디스패처에서 한 줄짜리 메시지로 변환됩니다.
빈 결과(EmptyResult)는 오류가 아니므로 여기에 없습니다.
"""

class InspectorError(Exception):
    """모든 조회 오류의 기반 클래스"""

class DependencyMissing(InspectorError):
    """필요한 외부 도구/데몬이 설치되어 있지 않음"""

class DependencyUnreachable(InspectorError):
    """설치되어 있으나 응답하지 않음 (타임아웃 포함)"""

class NotFound(InspectorError):
    """요청한 이름의 대상이 존재하지 않음"""

class InvalidInput(InspectorError):
    """잘못된 인자"""

class CommandFailed(InspectorError):
    """외부 명령이 예상하지 못한 종료 코드로 끝남"""

class EngineNotInstalled(DependencyMissing):
    pass

class EngineNotRunning(DependencyUnreachable):
    pass

class ContainerNotFound(NotFound):
    pass

class VirtualHostNotFound(NotFound):
    pass

class AccountNotFound(NotFound):
    pass

class InvalidTimeFormat(InvalidInput):
    pass
