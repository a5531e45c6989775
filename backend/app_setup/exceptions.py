"""
Gestionnaire d’exceptions HTTP.
- Callbacks AstimPay ouverts par un navigateur (Accept: text/html): page d’erreur lisible
  avec le message, même code HTTP (le client ne voit pas un JSON brut).
- Autres cas (API, notifications serveur): réponse JSON standard {"detail": ...}.
"""
import html
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse

ERROR_PAGE_TITLE = "Erreur webhook AstimPay"

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def html_error_on_browser_callbacks(request: Request, exc: HTTPException):
        accept = (request.headers.get("accept") or "").lower()
        is_callback = request.url.path.endswith("/callback")
        if is_callback and request.method == "GET" and "text/html" in accept:
            detail = html.escape(str(exc.detail or ""))
            body = (
                f"<!doctype html><html><head><title>{ERROR_PAGE_TITLE}</title></head>"
                f"<body><h1>{ERROR_PAGE_TITLE}</h1><p>{detail}</p></body></html>"
            )
            return HTMLResponse(content=body, status_code=exc.status_code)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
