"""
Configuration de TagIt.

Les valeurs sont lues dans les variables d'environnement ; un fichier
.env à la racine du projet est chargé s'il existe.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def get_database_uri() -> str:
    """URI SQLAlchemy de la base qui héberge le stockage clé-valeur."""
    return os.environ.get("TAGIT_DATABASE_URI", "sqlite:///tagit.db")


def get_max_tentatives_code() -> int:
    """Nombre maximal de tirages pour trouver un code déposant libre."""
    return int(os.environ.get("TAGIT_MAX_TENTATIVES_CODE", "10"))
