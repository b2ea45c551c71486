"""
Silver Leaf API Routes
======================

All API route blueprints for the portal.

Usage:
    from silverleaf.routes import register_routes
    register_routes(app)
"""
from .auth_routes import auth_bp
from .course_routes import course_bp
from .assignment_routes import assignment_bp
from .people_routes import people_bp
from .submission_routes import submission_bp
from .announcement_routes import announcement_bp
from .chat_routes import chat_bp
from .analysis_routes import analysis_bp


def register_routes(app):
    """Register all route blueprints with the Flask app."""
    app.register_blueprint(auth_bp)
    app.register_blueprint(course_bp)
    app.register_blueprint(assignment_bp)
    app.register_blueprint(people_bp)
    app.register_blueprint(submission_bp)
    app.register_blueprint(announcement_bp)
    app.register_blueprint(chat_bp)
    app.register_blueprint(analysis_bp)


__all__ = [
    'register_routes',
    'auth_bp',
    'course_bp',
    'assignment_bp',
    'people_bp',
    'submission_bp',
    'announcement_bp',
    'chat_bp',
    'analysis_bp',
]
