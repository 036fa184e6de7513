from flask import Flask, url_for, render_template, request, redirect, jsonify, flash
import os
import click
from decimal import Decimal, InvalidOperation
from gstinvoice.logging_config import setup_logging


def create_app(config_name=None):
    """Application factory pattern."""
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    # Get the base directory (project root)
    basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

    app = Flask(__name__,
                template_folder=os.path.join(basedir, 'templates'),
                static_folder=os.path.join(basedir, 'static'))

    from gstinvoice.config import config
    app.config.from_object(config[config_name])

    # Initialize extensions
    from gstinvoice.models import db, User
    from gstinvoice.extensions import csrf, login_manager, limiter
    from flask_wtf.csrf import generate_csrf

    db.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    setup_logging(app)

    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite:///') and not app.config.get('TESTING'):
        os.makedirs(os.path.join(basedir, 'instance'), exist_ok=True)

    @app.after_request
    def set_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'

        if not app.config.get('DEBUG') and not app.config.get('TESTING'):
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
            response.headers['Content-Security-Policy'] = (
                "default-src 'self'; "
                "script-src 'self' 'unsafe-inline'; "
                "style-src 'self' 'unsafe-inline'; "
                "img-src 'self' data: https:; "
                "frame-ancestors 'none';"
            )
        return response

    # Error handlers
    @app.errorhandler(404)
    def not_found_error(error):
        if request.is_json or request.path.startswith('/api/'):
            return jsonify({'success': False, 'message': 'Not found.'}), 404
        return render_template('errors/404.html'), 404

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        if request.is_json or request.path.startswith('/api/'):
            return jsonify({'success': False, 'message': 'Internal server error.'}), 500
        return render_template('errors/500.html'), 500

    @app.errorhandler(400)
    def bad_request_error(error):
        from flask_wtf.csrf import CSRFError
        message = None
        if isinstance(error, CSRFError):
            message = 'The form has expired or is invalid. Please try again.'
        if request.is_json or request.path.startswith('/api/'):
            return jsonify({'success': False, 'message': message or 'Bad request.'}), 400
        return render_template('errors/400.html', error_message=message), 400

    @app.errorhandler(429)
    def ratelimit_handler(error):
        """Handle rate limiting errors."""
        if request.is_json:
            return jsonify({
                'success': False,
                'message': 'Too many requests. Please try again later.'
            }), 429
        flash('Too many requests. Please try again later.', 'warning')
        from gstinvoice.forms import LoginForm
        return render_template('auth/login.html', form=LoginForm()), 429

    @app.errorhandler(401)
    def unauthorized_error(error):
        if request.is_json:
            return jsonify({'success': False, 'message': 'Please log in.'}), 401
        flash('Please log in to continue.', 'info')
        return redirect(url_for('auth.login'))

    @app.errorhandler(403)
    def forbidden_error(error):
        if request.is_json:
            return jsonify({'success': False, 'message': 'You are not allowed to do that.'}), 403
        flash('You are not allowed to do that.', 'danger')
        return redirect(url_for('dashboard.dashboard'))

    @app.context_processor
    def inject_globals():
        return {
            'csrf_token': generate_csrf,
            'currency_symbol': app.config.get('CURRENCY_SYMBOL', '₹'),
        }

    # Template filters
    @app.template_filter('money')
    def money_filter(value):
        """Two decimals with thousand separators."""
        if value is None:
            return '0.00'
        try:
            return f"{Decimal(str(value)):,.2f}"
        except (InvalidOperation, ValueError, TypeError):
            return '0.00'

    @app.template_filter('quantity')
    def quantity_filter(value):
        """Format quantity - show decimals only when needed."""
        if value is None:
            return '0'
        try:
            num = Decimal(str(value))
            if num == num.to_integral_value():
                return str(int(num))
            return f"{num:.2f}".rstrip('0').rstrip('.')
        except (InvalidOperation, ValueError, TypeError):
            return '0'

    @app.template_filter('rupees')
    def rupees_filter(value):
        """Whole rupees with thousand separators, for rounded totals."""
        if value is None:
            return '0'
        try:
            return f"{int(value):,}"
        except (ValueError, TypeError, OverflowError):
            return '0'

    @app.template_filter('indian_date')
    def indian_date_filter(value):
        if value is None:
            return ''
        return value.strftime('%d/%m/%Y')

    from gstinvoice.routes.auth import auth_bp
    from gstinvoice.routes.profile import profile_bp
    from gstinvoice.routes.invoices import invoices_bp
    from gstinvoice.routes.pdf import pdf_bp
    from gstinvoice.routes.dashboard import dashboard_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(pdf_bp)
    app.register_blueprint(dashboard_bp)

    # CLI commands
    @app.cli.command('init-db')
    def init_db():
        """Initialize the database."""
        db.create_all()
        click.echo('Database tables created successfully.')

    @app.cli.command('create-user')
    @click.argument('email')
    @click.argument('company')
    @click.password_option()
    def create_user(email, company, password):
        """Create a new user account."""
        try:
            user = User.create_user(email=email, password=password, company=company)
            click.echo(f'User {user.email} ({user.company}) created.')
        except ValueError as e:
            click.echo(f'Error: {e}', err=True)

    @app.cli.command('list-users')
    def list_users():
        """List all users."""
        users = User.query.order_by(User.created_at.desc()).all()
        if not users:
            click.echo('No users registered yet.')
            return

        click.echo('\nRegistered users:')
        click.echo('-' * 70)
        for user in users:
            profile = 'complete' if user.is_profile_complete else 'incomplete'
            click.echo(f'{user.email:30} | {user.company:25} | profile {profile}')

    return app
