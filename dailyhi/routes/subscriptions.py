# dailyhi/routes/subscriptions.py

from flask import Blueprint, request, render_template, redirect, url_for, flash, jsonify

from dailyhi.errors import DuplicateKey, InvalidEmail, InvalidTimezone, NotPending, UnknownCode
from dailyhi.subscriptions import get_service


subscriptions_bp = Blueprint('subscriptions', __name__)


def wants_json():
    return request.is_json or request.accept_mimetypes.best == 'application/json'


def form_data():
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form


@subscriptions_bp.route('/')
def index():
    return redirect(url_for('subscriptions.subscribe'))


@subscriptions_bp.route('/subscribe', methods=['GET', 'POST'])
def subscribe():
    if request.method == 'POST':
        data = form_data()
        email = (data.get('email') or '').strip()
        timezone = data.get('timezone')

        try:
            subscription = get_service().create(email, timezone)
        except InvalidEmail:
            message = 'Please enter a valid email address'
        except InvalidTimezone:
            message = 'Please choose a timezone between UTC-12 and UTC+14'
        except DuplicateKey:
            message = 'This email is already subscribed!'
        else:
            if wants_json():
                return jsonify({'email': subscription.email, 'verified': False}), 201
            flash('Thanks! Check your inbox for a link to verify your email address.', 'success')
            return redirect(url_for('subscriptions.subscribe'))

        if wants_json():
            return jsonify({'error': message}), 400
        flash(message, 'danger')
        return render_template('subscribe.html', email=email), 400

    return render_template('subscribe.html')


@subscriptions_bp.route('/resend', methods=['POST'])
def resend():
    data = form_data()
    email = (data.get('email') or '').strip()

    try:
        sent = get_service().resend_verification(email)
    except InvalidEmail:
        message, status = 'Please enter a valid email address', 400
    except NotPending:
        message, status = 'No subscription at that address is waiting for verification', 404
    else:
        if sent:
            message, status = 'We sent your verification link again. Check your inbox.', 200
        else:
            message, status = 'We could not send the email right now. Please try again later.', 503

    if wants_json():
        return jsonify({'message' if status == 200 else 'error': message}), status
    flash(message, 'success' if status == 200 else 'danger')
    return render_template('subscribe.html', email=email), status


@subscriptions_bp.route('/verify/<code>')
def verify(code):
    try:
        subscription = get_service().verify(code)
    except UnknownCode:
        if wants_json():
            return jsonify({'error': 'Invalid verification link'}), 404
        flash('Invalid verification link', 'danger')
        return render_template('verified.html', subscription=None), 404

    if wants_json():
        return jsonify(subscription.to_dict())
    return render_template('verified.html', subscription=subscription)


@subscriptions_bp.route('/timezone/<code>', methods=['POST'])
def update_timezone(code):
    data = form_data()
    try:
        subscription = get_service().update_timezone(code, data.get('timezone'))
    except UnknownCode:
        return jsonify({'error': 'Unknown subscription'}), 404
    except InvalidTimezone as e:
        return jsonify({'error': str(e)}), 400

    return jsonify(subscription.to_dict())
