from .clients_controller import ClientsController
from .list_controller import ERROR, IDLE, LOADING, READY, ListController, LoadTicket
from .projects_controller import ProjectsController

__all__ = [
    "ClientsController",
    "ProjectsController",
    "ListController",
    "LoadTicket",
    "IDLE",
    "LOADING",
    "READY",
    "ERROR",
]
