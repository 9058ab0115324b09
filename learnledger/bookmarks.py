from flask import current_app
from sqlalchemy import text

from learnledger import db
from learnledger.projects import get_project, project_to_dict, PROJECT_COLUMNS
from learnledger.utils import normalize_identifier, isoformat


def add_bookmark(identifier, project_id):
    """Bookmark a project. Returns (bookmark, created); bookmarking twice is harmless."""
    identifier = normalize_identifier(identifier)
    get_project(project_id)

    insert_query = """
    INSERT INTO bookmarks (user_identifier, project_id)
    VALUES (:identifier, :project_id)
    ON CONFLICT (user_identifier, project_id) DO NOTHING
    RETURNING id, user_identifier, project_id, created_at;
    """
    params = {'identifier': identifier, 'project_id': project_id}
    row = db.session.execute(text(insert_query), params).fetchone()
    created = row is not None
    if not created:
        select_query = """
        SELECT id, user_identifier, project_id, created_at
        FROM bookmarks
        WHERE user_identifier = :identifier AND project_id = :project_id;
        """
        row = db.session.execute(text(select_query), params).fetchone()
    else:
        current_app.logger.debug(f"{identifier} bookmarked project {project_id}")

    return {
        'bookmarkId': row.id,
        'walletAddress': row.user_identifier,
        'projectId': row.project_id,
        'createdAt': isoformat(row.created_at),
    }, created


def remove_bookmark(identifier, project_id):
    query = "DELETE FROM bookmarks WHERE user_identifier = :identifier AND project_id = :project_id;"
    result = db.session.execute(text(query), {
        'identifier': normalize_identifier(identifier),
        'project_id': project_id,
    })
    return result.rowcount > 0


def list_bookmarks(identifier):
    columns = ', '.join(f"p.{column.strip()}" for column in PROJECT_COLUMNS.split(','))
    query = f"""
    SELECT b.id AS bookmark_id, b.created_at AS bookmarked_at, {columns}
    FROM bookmarks b
    JOIN projects p ON p.id = b.project_id
    WHERE b.user_identifier = :identifier
    ORDER BY b.created_at DESC, b.id DESC;
    """
    rows = db.session.execute(text(query), {'identifier': normalize_identifier(identifier)}).fetchall()
    return [
        {
            'bookmarkId': row.bookmark_id,
            'bookmarkedAt': isoformat(row.bookmarked_at),
            'project': project_to_dict(row),
        }
        for row in rows
    ]
