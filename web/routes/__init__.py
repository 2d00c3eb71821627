"""
API 라우트 패키지

각 기능별 라우터 모듈:
- health: 헬스 체크
- transfer: 사용자 간 이체
"""
