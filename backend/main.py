import logging

import uvicorn

from backend.core.conf import settings
from backend.core.registrar import register_app

logger = logging.getLogger(__name__)

app = register_app()


@app.get('/health')
async def health_check():
    return {'status': 'ok', 'environment': settings.ENVIRONMENT}


if __name__ == '__main__':
    try:
        uvicorn.run(app='backend.main:app', host='127.0.0.1', port=8000, reload=settings.ENVIRONMENT == 'dev')
    except Exception as e:
        logger.error(f'FastAPI start failed: {e}')
