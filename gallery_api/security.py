from fastapi import Header, HTTPException, Request


def require_admin_token(request: Request, x_admin_token: str | None = Header(default=None)):
    cfg_token = request.app.state.settings.admin_token
    if cfg_token and x_admin_token != cfg_token:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return True
