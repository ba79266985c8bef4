from fastapi import FastAPI

from .diag_api import router as diag_router

app = FastAPI(title='memsdiag webapp')

app.include_router(diag_router)


@app.get('/api/health')
def health():
    return {'status': 'ok'}
