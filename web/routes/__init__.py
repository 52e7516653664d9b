"""
API 라우트 패키지

각 기능별 라우터 모듈:
- health: 헬스 체크
- transactions: 거래 CRUD 및 변경 이력
- categories: 카테고리 관리
- accounts: 계좌 관리
- balance: 잔액 및 대시보드 집계
- users: 본인 계정 비활성화
"""
