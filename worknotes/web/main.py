"""
Web interface: task editing, export/import, sessions and account deletion
"""

from contextlib import asynccontextmanager
from typing import Optional
import httpx
from fastapi import FastAPI, File, Form, Header, UploadFile
from fastapi.responses import JSONResponse, Response
from worknotes.config.constants import DEFAULT_PRIORITY, MARKDOWN_EXTENSION, MARKDOWN_MEDIA_TYPE
from worknotes.main import WorknotesApp
from worknotes.models.response import ImportResult
from worknotes.models.task import tasks_to_storage
from worknotes.services.markdown import export_filename
from worknotes.utils.date_utils import get_today_date
from worknotes.utils.error_handler import AccountDeletionError, ValidationError, format_error_message
from worknotes.utils.logger import logger


def create_app(worknotes_app: Optional[WorknotesApp] = None) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        worknotes_app: Application objects (built from settings if omitted)
    """
    worknotes = worknotes_app or WorknotesApp()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("[Startup] Loading tasks...")
        await worknotes.start()
        yield
        await worknotes.stop()

    app = FastAPI(title="Worknotes", lifespan=lifespan)
    app.state.worknotes = worknotes

    @app.post("/functions/v1/delete_user")
    async def delete_user(authorization: str = Header(default="")):
        """Delete the caller's tasks, profile and auth identity"""
        if worknotes.account_service is None:
            return JSONResponse({"error": "Account deletion is not configured"}, status_code=500)

        jwt = authorization.replace("Bearer ", "", 1).strip()
        try:
            await worknotes.account_service.delete_user(jwt)
        except AccountDeletionError as e:
            return JSONResponse({"error": e.message}, status_code=e.status_code)
        return {"success": True}

    @app.get("/api/tasks")
    async def list_tasks():
        """Current task collection"""
        return tasks_to_storage(worknotes.task_manager.collection)

    def task_not_found(task_id: str) -> JSONResponse:
        return JSONResponse({"success": False, "message": f"Task {task_id} not found"}, status_code=404)

    def invalid_input(error: ValidationError) -> JSONResponse:
        return JSONResponse({"success": False, "message": format_error_message(error)}, status_code=400)

    async def saved(payload: dict) -> dict:
        await worknotes.sync_service.save("api")
        return {"success": True, **payload}

    @app.post("/api/tasks")
    async def add_task(
        text: str = Form(...),
        priority: str = Form(DEFAULT_PRIORITY),
        has_reminder: bool = Form(False),
    ):
        """Add a task under the active date, or switch date with /today and /DD-MM-YY"""
        try:
            task = worknotes.task_manager.handle_input(text, priority=priority, has_reminder=has_reminder)
        except ValidationError as e:
            return invalid_input(e)
        if task is None:
            return {"success": True, "active_date": worknotes.task_manager.active_date}
        return await saved({"task": task.to_storage()})

    @app.post("/api/tasks/reorder")
    async def reorder_tasks(date: str = Form(...), from_index: int = Form(...), to_index: int = Form(...)):
        """Move a task to another position within its date"""
        worknotes.task_manager.reorder(from_index, to_index, date)
        return await saved({"tasks": [task.to_storage() for task in worknotes.task_manager.collection.get(date, [])]})

    @app.post("/api/tasks/{task_id}/status")
    async def set_status(task_id: str, is_completed: bool = Form(...)):
        """Complete or reopen a task"""
        if worknotes.task_manager.find_task(task_id) is None:
            return task_not_found(task_id)
        worknotes.task_manager.set_status(task_id, is_completed)
        return await saved({"task": worknotes.task_manager.find_task(task_id).to_storage()})

    @app.post("/api/tasks/{task_id}/content")
    async def update_content(task_id: str, content: str = Form(...)):
        """Edit task text"""
        if worknotes.task_manager.find_task(task_id) is None:
            return task_not_found(task_id)
        try:
            worknotes.task_manager.update_content(task_id, content)
        except ValidationError as e:
            return invalid_input(e)
        return await saved({"task": worknotes.task_manager.find_task(task_id).to_storage()})

    @app.post("/api/tasks/{task_id}/priority")
    async def set_priority(task_id: str, priority: str = Form(...)):
        """Change task priority"""
        if worknotes.task_manager.find_task(task_id) is None:
            return task_not_found(task_id)
        try:
            worknotes.task_manager.set_priority(task_id, priority)
        except ValidationError as e:
            return invalid_input(e)
        return await saved({"task": worknotes.task_manager.find_task(task_id).to_storage()})

    @app.post("/api/tasks/{task_id}/move")
    async def move_task(task_id: str, to_date: str = Form(...)):
        """Move a task to the end of another date"""
        task = worknotes.task_manager.find_task(task_id)
        if task is None:
            return task_not_found(task_id)
        try:
            worknotes.task_manager.move(task_id, task.date, to_date)
        except ValidationError as e:
            return invalid_input(e)
        return await saved({"task": worknotes.task_manager.find_task(task_id).to_storage()})

    @app.delete("/api/tasks/{task_id}")
    async def delete_task(task_id: str):
        """Delete a task"""
        if worknotes.task_manager.find_task(task_id) is None:
            return task_not_found(task_id)
        worknotes.task_manager.delete(task_id)
        return await saved({})

    @app.post("/api/undo")
    async def undo():
        """Undo the last change"""
        if not worknotes.task_manager.can_undo:
            return {"success": False, "message": "Nothing to undo"}
        worknotes.task_manager.undo()
        return await saved({})

    @app.post("/api/redo")
    async def redo():
        """Redo the last undone change"""
        if not worknotes.task_manager.can_redo:
            return {"success": False, "message": "Nothing to redo"}
        worknotes.task_manager.redo()
        return await saved({})

    @app.get("/api/export")
    async def export_tasks():
        """Download all tasks as markdown"""
        markdown = worknotes.sync_service.export_markdown()
        filename = export_filename(get_today_date())
        return Response(
            content=markdown,
            media_type=MARKDOWN_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post("/api/import", response_model=ImportResult)
    async def import_tasks(file: UploadFile = File(...)):
        """Import tasks from an uploaded markdown file"""
        if file.filename and not file.filename.endswith(MARKDOWN_EXTENSION):
            return ImportResult(success=False, message=f"Please choose a {MARKDOWN_EXTENSION} file")

        try:
            content = (await file.read()).decode("utf-8")
        except UnicodeDecodeError:
            return ImportResult(success=False, message="Error importing tasks. Invalid file format.")

        result = worknotes.sync_service.import_markdown(content)
        if result.success:
            await worknotes.sync_service.save("import")
        return result

    @app.post("/api/session")
    async def sign_in(authorization: str = Header(default="")):
        """Sign in with an auth provider access token"""
        token = authorization.replace("Bearer ", "", 1).strip()
        if not token:
            return JSONResponse({"success": False, "message": "Missing access token"}, status_code=401)
        try:
            auth = await worknotes.sign_in(token)
        except httpx.HTTPStatusError as e:
            logger.warning(f"Sign in rejected: {e}")
            return JSONResponse({"success": False, "message": "Invalid access token"}, status_code=401)
        except (httpx.HTTPError, ValueError) as e:
            return JSONResponse({"success": False, "message": format_error_message(e)}, status_code=500)
        return {"success": True, "user_id": auth.user_id}

    @app.delete("/api/session")
    async def sign_out():
        """Sign out and continue with local tasks"""
        try:
            await worknotes.sign_out()
        except ValueError as e:
            return JSONResponse({"success": False, "message": format_error_message(e)}, status_code=500)
        return {"success": True}

    @app.delete("/api/account")
    async def delete_account():
        """Delete the signed-in user's account, then sign out"""
        try:
            await worknotes.delete_account()
        except (AccountDeletionError, ValueError) as e:
            return JSONResponse({"success": False, "message": format_error_message(e)}, status_code=500)
        return {"success": True}

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    from worknotes.config.settings import settings

    uvicorn.run(app, host="0.0.0.0", port=settings.WEB_PORT)
