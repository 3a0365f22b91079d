# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant l'appel à create_all() au démarrage de l'API.

from app.models.student import Student  # noqa: F401
from app.models.attendance import Attendance  # noqa: F401
