# scripts/generate_firestore_rules.py
"""
Write firestore.rules: the access policy Firestore enforces for browser clients.

Public read on teams, matches, questions and leaderboards; writes need
users/{uid}.role == 'admin'; predictionAnswers belong to their owner.

    python -m scripts.generate_firestore_rules [path]
"""

import logging
import sys
from pathlib import Path

logger = logging.getLogger("generate_firestore_rules")

PUBLIC_READ_ADMIN_WRITE = ["teams", "matches", "questions"]

HEADER = """rules_version = '2';
service cloud.firestore {
  match /databases/{database}/documents {
    function isAuthenticated() {
      return request.auth != null;
    }

    function isAdmin() {
      return isAuthenticated() &&
        exists(/databases/$(database)/documents/users/$(request.auth.uid)) &&
        get(/databases/$(database)/documents/users/$(request.auth.uid)).data.role == 'admin';
    }

    function isOwner(userId) {
      return isAuthenticated() && request.auth.uid == userId;
    }
"""

PUBLIC_BLOCK = """
    match /{collection}/{{docId}} {{
      allow read: if true;
      allow write: if isAdmin();
    }}
"""

REST = """
    // Users may create and edit their own profile but never grant themselves a role
    match /users/{userId} {
      allow read: if isOwner(userId) || isAdmin();
      allow create: if isOwner(userId) && request.resource.data.get('role', 'user') == 'user';
      allow update: if isAdmin() || (isOwner(userId) &&
        request.resource.data.get('role', 'user') == resource.data.get('role', 'user'));
      allow delete: if isAdmin();
    }

    match /predictionAnswers/{answerId} {
      allow read: if isAuthenticated() && (resource.data.userId == request.auth.uid || isAdmin());
      // Owners write their answer only; isCorrect and pointsEarned are set by admins when scoring
      allow create: if isAdmin() || (isAuthenticated() &&
        request.resource.data.userId == request.auth.uid &&
        !request.resource.data.keys().hasAny(['isCorrect', 'pointsEarned']));
      allow update: if isAdmin() || (isAuthenticated() &&
        resource.data.userId == request.auth.uid &&
        request.resource.data.diff(resource.data).affectedKeys().hasOnly(['answer', 'updatedAt']));
      allow delete: if isAuthenticated() && (resource.data.userId == request.auth.uid || isAdmin());
    }

    match /matchResults/{matchId} {
      allow read: if true;
      allow write: if isAdmin();
    }

    match /leaderboards/{leaderboardId} {
      allow read: if true;
      allow write: if isAdmin();

      match /leaderboardEntries/{entryId} {
        allow read: if true;
        allow write: if isAdmin();
      }
    }
  }
}
"""


def build_rules() -> str:
    blocks = "".join(PUBLIC_BLOCK.format(collection=name) for name in PUBLIC_READ_ADMIN_WRITE)
    return HEADER + blocks + REST


def write_rules(path="firestore.rules") -> Path:
    path = Path(path)
    path.write_text(build_rules(), encoding="utf-8")
    logger.info("Firestore rules written to %s", path.resolve())
    return path


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    write_rules(sys.argv[1] if len(sys.argv) > 1 else "firestore.rules")
