from __future__ import annotations

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from envvault.errors import NotFoundError, ValidationFailedError
from envvault.models import Project, ProjectPermission
from envvault.permissions import Principal, Role


class ProjectService:
  def __init__(self, db: AsyncSession) -> None:
    self.db = db

  async def create_project(self, *, owner_id: str, name: str, description: str | None = None) -> tuple[Project, Role]:
    """
    Create a project and grant its owner ``admin``.

    Both rows are written in one transaction. If either insert fails nothing
    is committed, so a project never exists without an admin.
    """
    name = (name or "").strip()
    if not name:
      raise ValidationFailedError("name is required")
    desc = (description or "").strip() or None

    p = Project(name=name, description=desc, owner_id=owner_id)
    try:
      self.db.add(p)
      await self.db.flush()
      self.db.add(ProjectPermission(user_id=owner_id, project_id=p.id, role=Role.admin.value))
      await self.db.commit()
    except Exception:
      await self.db.rollback()
      raise
    logger.info("project created: id={} owner={}", p.id, owner_id)
    return p, Role.admin

  async def list_projects_for_user(self, user_id: str) -> list[tuple[Project, Role]]:
    res = await self.db.execute(
      select(Project, ProjectPermission.role)
      .join(ProjectPermission, ProjectPermission.project_id == Project.id)
      .where(ProjectPermission.user_id == user_id)
      .order_by(Project.updated_at.desc())
    )
    out: list[tuple[Project, Role]] = []
    for project, role in res.all():
      try:
        out.append((project, Role(role)))
      except ValueError:
        continue
    return out

  async def get_project(self, principal: Principal) -> Project:
    res = await self.db.execute(select(Project).where(Project.id == principal.project_id))
    p = res.scalar_one_or_none()
    if not p:
      raise NotFoundError("Project not found")
    return p
