"""Route modules, one ``APIRouter`` per workflow component."""
