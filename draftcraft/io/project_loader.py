"""Project loading and saving utilities."""

import logging
from pathlib import Path
from typing import Union

from ..core.project import Project
from ..exceptions import PersistenceError
from .file_handler import FileHandler

logger = logging.getLogger(__name__)


class ProjectLoader:
    """Handles loading and saving projects."""

    def __init__(self):
        self.file_handler = FileHandler()

    def load_project(self, project_file: Union[str, Path]) -> Project:
        """Load project from file."""
        data = self.file_handler.read_json(project_file)
        return Project.from_dict(data)

    def save_project(self, project: Project, project_file: Union[str, Path]) -> None:
        """Save project to file."""
        self.file_handler.write_json(project_file, project.to_dict())


class ProjectStore:
    """The project persistence collaborator bound to one project file."""

    def __init__(self, project_file: Union[str, Path], loader: ProjectLoader = None):
        self.project_file = Path(project_file)
        self.loader = loader or ProjectLoader()

    def load(self) -> Project:
        try:
            return self.loader.load_project(self.project_file)
        except (OSError, ValueError, KeyError) as e:
            raise PersistenceError(f"Could not load project {self.project_file}: {e}") from e

    async def save_project(self, project: Project) -> None:
        """Write the project back to its file."""
        project.touch()
        try:
            self.loader.save_project(project, self.project_file)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Could not save project {self.project_file}: {e}") from e
        logger.debug(f"Saved project {project.id} to {self.project_file}")
