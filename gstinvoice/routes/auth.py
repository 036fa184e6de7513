from flask import Blueprint, render_template, flash, redirect, url_for, request, session, current_app
from flask_login import login_user, logout_user, login_required, current_user
from datetime import timedelta

from gstinvoice.models import User
from gstinvoice.forms import LoginForm, SignupForm
from gstinvoice.extensions import limiter
from gstinvoice.logging_config import get_logger

logger = get_logger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def _client_ip():
    ip_address = request.environ.get('HTTP_X_FORWARDED_FOR', request.remote_addr)
    if ip_address and ',' in ip_address:
        ip_address = ip_address.split(',')[0].strip()
    return ip_address


def _safe_next(default_endpoint):
    next_page = session.pop('next', None) or request.args.get('next')
    if not next_page or not next_page.startswith('/') or next_page.startswith('//'):
        next_page = url_for(default_endpoint)
    return next_page


@auth_bp.route('/signup', methods=['GET', 'POST'])
def signup():
    """Create an account and continue to profile setup."""
    if current_user.is_authenticated:
        return redirect(url_for('dashboard.dashboard'))

    form = SignupForm()
    if form.validate_on_submit():
        try:
            user = User.create_user(
                email=form.email.data,
                password=form.password.data,
                company=form.company.data
            )
        except ValueError as e:
            flash(str(e), 'danger')
        except Exception as e:
            logger.error(f'Signup error for {form.email.data}: {e}', exc_info=True)
            flash('Could not create the account. Please try again.', 'danger')
        else:
            login_user(user)
            logger.info(f'New user registered: {user.email}')
            flash('Account created. Complete your business profile to start invoicing.', 'success')
            return redirect(url_for('profile.setup_profile'))

    return render_template('auth/signup.html', form=form)


@auth_bp.route('/login', methods=['GET', 'POST'])
@limiter.limit(lambda: current_app.config.get('RATELIMIT_LOGIN', '10 per minute'), methods=['POST'])
def login():
    """User login."""
    if current_user.is_authenticated:
        return redirect(url_for('dashboard.dashboard'))

    form = LoginForm()
    if form.validate_on_submit():
        if form.validate_login():
            user = form.user
            remember_duration = timedelta(days=30) if form.remember_me.data else None
            login_user(user, remember=form.remember_me.data, duration=remember_duration)

            logger.info(f'User {user.email} logged in from IP: {_client_ip()}')
            if not user.is_profile_complete:
                return redirect(url_for('profile.setup_profile'))
            return redirect(_safe_next('dashboard.dashboard'))

        logger.warning(f'Failed login attempt for {form.email.data} from IP: {_client_ip()}')
        flash('Invalid email or password.', 'danger')

    return render_template('auth/login.html', form=form)


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """Log out and clear the session."""
    email = current_user.email
    session.clear()
    logout_user()

    logger.info(f'User {email} logged out')
    flash('You have been logged out.', 'info')

    response = redirect(url_for('auth.login'))
    response.headers['Cache-Control'] = 'no-cache, no-store, must-revalidate'
    response.headers['Pragma'] = 'no-cache'
    response.headers['Expires'] = '0'
    return response
