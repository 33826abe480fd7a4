"""Blueprint registration module.

This file only wires together the various blueprints. The route
implementations live in versioned modules under vidtube.routes.v1.
"""

from vidtube.routes.v1.healthcheck_route import healthcheck_bp
from vidtube.routes.v1.user_route import user_bp
from vidtube.routes.v1.video_route import video_bp
from vidtube.routes.v1.subscription_route import subscription_bp
from vidtube.routes.v1.tweet_route import tweet_bp
from vidtube.routes.v1.comment_route import comment_bp
from vidtube.routes.v1.like_route import like_bp
from vidtube.routes.v1.playlist_route import playlist_bp
from vidtube.routes.v1.dashboard_route import dashboard_bp


def register_blueprints(app):
    """Register application blueprints with the Flask app instance."""
    BASE = '/api/v1'
    app.register_blueprint(healthcheck_bp, url_prefix=f'{BASE}/healthcheck')
    app.register_blueprint(user_bp, url_prefix=f'{BASE}/users')
    app.register_blueprint(video_bp, url_prefix=f'{BASE}/videos')
    app.register_blueprint(subscription_bp, url_prefix=f'{BASE}/subscriptions')
    app.register_blueprint(tweet_bp, url_prefix=f'{BASE}/tweets')
    app.register_blueprint(comment_bp, url_prefix=f'{BASE}/comments')
    app.register_blueprint(like_bp, url_prefix=f'{BASE}/likes')
    app.register_blueprint(playlist_bp, url_prefix=f'{BASE}/playlist')
    app.register_blueprint(dashboard_bp, url_prefix=f'{BASE}/dashboard')
    app.logger.info("Blueprints registered (%d)", 9)
