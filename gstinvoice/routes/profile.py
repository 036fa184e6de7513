from functools import wraps
from flask import Blueprint, render_template, flash, redirect, url_for, request
from flask_login import login_required, current_user

from gstinvoice.models import db, BankDetail, UserSettings
from gstinvoice.forms import SetupProfileForm, ProfileForm, BankDetailForm, SettingsForm
from gstinvoice.logging_config import get_logger

logger = get_logger(__name__)

profile_bp = Blueprint('profile', __name__)

PROFILE_FIELDS = ('company', 'gstin', 'phone', 'mobile', 'address', 'city', 'state', 'pincode', 'logo_url')
BANK_FIELDS = ('bank_name', 'branch', 'account_no', 'ifsc_code')


def profile_required(view):
    """Send users without a complete seller profile to profile setup."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not current_user.is_profile_complete:
            flash('Complete your business profile before creating invoices.', 'warning')
            return redirect(url_for('profile.setup_profile'))
        return view(*args, **kwargs)
    return wrapped


def _bank_detail(user):
    if user.bank_detail is None:
        user.bank_detail = BankDetail()
    return user.bank_detail


def _settings(user):
    if user.settings is None:
        user.settings = UserSettings()
    return user.settings


def _copy_fields(form, target, fields):
    for field in fields:
        value = getattr(form, field).data
        if isinstance(value, str):
            value = value.strip() or None
        setattr(target, field, value)


@profile_bp.route('/setup-profile', methods=['GET', 'POST'])
@login_required
def setup_profile():
    """First-time profile, bank and terms setup."""
    form = SetupProfileForm()

    if request.method == 'GET':
        form.process(obj=current_user)
        if current_user.bank_detail is not None:
            for field in BANK_FIELDS:
                getattr(form, field).data = getattr(current_user.bank_detail, field)
        if current_user.settings is not None:
            form.terms.data = current_user.settings.terms

    if form.validate_on_submit():
        try:
            _copy_fields(form, current_user, PROFILE_FIELDS)
            _copy_fields(form, _bank_detail(current_user), BANK_FIELDS)
            _settings(current_user).terms = form.terms.data or None
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f'Profile setup error for {current_user.email}: {e}', exc_info=True)
            flash('Could not save your profile. Please try again.', 'danger')
        else:
            logger.info(f'Profile set up for {current_user.email}')
            flash('Profile saved.', 'success')
            return redirect(url_for('dashboard.dashboard'))

    return render_template('profile/setup.html', form=form)


@profile_bp.route('/profile')
@login_required
def profile():
    """Read-only view of the seller profile."""
    return render_template('profile/view.html', user=current_user,
                           bank=current_user.bank_detail, settings=current_user.settings)


def _settings_forms():
    profile_form = ProfileForm(prefix='profile')
    bank_form = BankDetailForm(prefix='bank')
    terms_form = SettingsForm(prefix='terms')
    return profile_form, bank_form, terms_form


def _render_settings(profile_form, bank_form, terms_form):
    return render_template('settings.html', profile_form=profile_form,
                           bank_form=bank_form, terms_form=terms_form)


@profile_bp.route('/settings')
@login_required
def settings():
    """Settings page with profile, bank and terms sections."""
    profile_form, bank_form, terms_form = _settings_forms()
    profile_form.process(obj=current_user)
    if current_user.bank_detail is not None:
        bank_form.process(obj=current_user.bank_detail)
    if current_user.settings is not None:
        terms_form.process(obj=current_user.settings)
    return _render_settings(profile_form, bank_form, terms_form)


def _save_section(form, target, fields, section):
    if form.validate_on_submit():
        try:
            _copy_fields(form, target, fields)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f'Error updating {section} for {current_user.email}: {e}', exc_info=True)
            flash(f'Could not update {section}.', 'danger')
        else:
            logger.info(f'{section.capitalize()} updated for {current_user.email}')
            flash(f'{section.capitalize()} updated.', 'success')
            return True
    return False


@profile_bp.route('/settings/profile', methods=['POST'])
@login_required
def update_profile():
    profile_form, bank_form, terms_form = _settings_forms()
    if _save_section(profile_form, current_user, PROFILE_FIELDS, 'profile'):
        return redirect(url_for('profile.settings'))
    return _render_settings(profile_form, bank_form, terms_form), 400


@profile_bp.route('/settings/bank', methods=['POST'])
@login_required
def update_bank():
    profile_form, bank_form, terms_form = _settings_forms()
    if _save_section(bank_form, _bank_detail(current_user), BANK_FIELDS, 'bank details'):
        return redirect(url_for('profile.settings'))
    return _render_settings(profile_form, bank_form, terms_form), 400


@profile_bp.route('/settings/terms', methods=['POST'])
@login_required
def update_terms():
    profile_form, bank_form, terms_form = _settings_forms()
    if _save_section(terms_form, _settings(current_user), ('terms',), 'terms'):
        return redirect(url_for('profile.settings'))
    return _render_settings(profile_form, bank_form, terms_form), 400
