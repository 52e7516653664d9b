"""
Web 진입점

실행 방법:
    python -m web
"""

import uvicorn

from core.constants import Defaults
from core.logging import setup_logging

if __name__ == "__main__":
    # 로깅 설정 (콘솔 + 파일)
    setup_logging("web")

    uvicorn.run(
        "web.app:app",
        host=Defaults.WEB_HOST,
        port=Defaults.WEB_PORT,
        reload=False,
    )
