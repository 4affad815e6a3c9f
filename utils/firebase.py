# utils/firebase.py
import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore

from config import get_setting

logger = logging.getLogger(__name__)


def init_app(credentials_path: Optional[str] = None, project_id: Optional[str] = None,
             name: str = "ipl-predictor") -> firebase_admin.App:
    """
    Initialise (or reuse) a named Firebase Admin app.

    Without a service account file, Application Default Credentials are used
    (the usual setup on Cloud Run / App Service with workload identity).
    """
    try:
        return firebase_admin.get_app(name)
    except ValueError:
        pass

    credentials_path = credentials_path or get_setting("FIREBASE_CREDENTIALS")
    project_id = project_id or get_setting("FIREBASE_PROJECT_ID")
    options = {"projectId": project_id} if project_id else None

    if credentials_path:
        cred = credentials.Certificate(credentials_path)
        logger.info("Initialising Firebase Admin with service account %s", credentials_path)
    else:
        cred = credentials.ApplicationDefault()
        logger.info("Initialising Firebase Admin with application default credentials")
    return firebase_admin.initialize_app(cred, options, name=name)


def create_firestore_client(credentials_path: Optional[str] = None, project_id: Optional[str] = None):
    """Return a Firestore client. Callers own it and pass it to utils.db functions."""
    return firestore.client(app=init_app(credentials_path, project_id))
