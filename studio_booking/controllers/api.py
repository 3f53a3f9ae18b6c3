# controllers/api.py
"""
JSON API for the booking engine.

Every route is a thin adapter: parse the request, call one service operation
with the request's database session, and serialize the result. Domain errors
propagate to the application's error handlers, which render them as
``{"success": false, "message", "error_code", "details"}``.
"""

import logging

from flask import Blueprint, jsonify, request

from studio_booking.errors import ValidationError
from studio_booking.extensions import db
from studio_booking.services import (
    AttendanceService,
    SlotCapacityModel,
    SubscriptionService,
    TrialBookingService,
)
from studio_booking.utils.request_parsing import (
    parse_amount,
    parse_bool,
    parse_date,
    parse_int,
    require_str,
)

api_bp = Blueprint('api', __name__)

logger = logging.getLogger('api')


def _payload():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('No data provided', code='missing_data')
    return data


def _subscription_dict(subscription):
    data = subscription.to_dict()
    data['plan_name'] = subscription.plan.name if subscription.plan else None
    data['slot_name'] = subscription.slot.display_name if subscription.slot else None
    return data


# Capacity

@api_bp.route('/slots/<slot_id>/capacity', methods=['GET'])
def check_capacity(slot_id):
    start_date = parse_date(request.args.get('start_date'), 'start_date')
    end_date = parse_date(request.args.get('end_date'), 'end_date', required=False)
    if end_date and end_date < start_date:
        raise ValidationError('end_date must not be before start_date', code='invalid_range')

    result = SlotCapacityModel(db.session).check_capacity(
        slot_id, start_date, end_date,
        exclude_member_id=request.args.get('exclude_member_id'),
    )
    return jsonify({'success': True, **result.to_dict()})


@api_bp.route('/slots/<slot_id>/availability', methods=['GET'])
def slot_availability(slot_id):
    on_date = parse_date(request.args.get('date'), 'date')
    availability = SlotCapacityModel(db.session).get_slot_availability(slot_id, on_date)
    return jsonify({'success': True, 'availability': availability})


@api_bp.route('/slots/availability', methods=['GET'])
def all_slots_availability():
    on_date = parse_date(request.args.get('date'), 'date')
    slots = SlotCapacityModel(db.session).get_all_slots_availability(on_date)
    return jsonify({'success': True, 'date': on_date.isoformat(), 'slots': slots})


# Subscriptions

@api_bp.route('/subscriptions', methods=['POST'])
def create_subscription():
    data = _payload()
    result = SubscriptionService(db.session).create(
        member_id=require_str(data, 'member_id'),
        plan_id=require_str(data, 'plan_id'),
        slot_id=require_str(data, 'slot_id'),
        start_date=parse_date(data.get('start_date'), 'start_date'),
        discount_amount=parse_amount(data.get('discount_amount'), 'discount_amount'),
        discount_reason=data.get('discount_reason'),
        notes=data.get('notes'),
    )
    subscription = result['subscription']
    invoice = result['invoice']
    return jsonify({
        'success': True,
        'subscription_id': subscription.id,
        'invoice_id': invoice.id,
        'invoice_number': invoice.invoice_number,
        'end_date': subscription.end_date.isoformat(),
        'warning': result['warning'],
    }), 201


@api_bp.route('/subscriptions/<subscription_id>/extend', methods=['POST'])
def extend_subscription(subscription_id):
    data = _payload()
    subscription = SubscriptionService(db.session).extend(
        subscription_id, parse_int(data.get('days'), 'days'), data.get('reason')
    )
    return jsonify({'success': True, 'subscription': _subscription_dict(subscription)})


@api_bp.route('/subscriptions/<subscription_id>/transfer', methods=['POST'])
def transfer_slot(subscription_id):
    data = _payload()
    result = SubscriptionService(db.session).transfer_slot(
        subscription_id,
        require_str(data, 'new_slot_id'),
        parse_date(data.get('effective_date'), 'effective_date'),
        data.get('reason'),
    )
    return jsonify({
        'success': True,
        'subscription': _subscription_dict(result['subscription']),
        'warning': result['warning'],
    })


@api_bp.route('/subscriptions/<subscription_id>/extra-days', methods=['POST'])
def set_extra_days(subscription_id):
    data = _payload()
    subscription = SubscriptionService(db.session).set_extra_days(
        subscription_id, parse_int(data.get('extra_days'), 'extra_days'), data.get('reason')
    )
    return jsonify({'success': True, 'subscription': _subscription_dict(subscription)})


@api_bp.route('/subscriptions/<subscription_id>/cancel', methods=['POST'])
def cancel_subscription(subscription_id):
    data = request.get_json(silent=True) or {}
    subscription = SubscriptionService(db.session).cancel(subscription_id, data.get('reason'))
    return jsonify({'success': True, 'subscription': _subscription_dict(subscription)})


@api_bp.route('/members/<member_id>/subscriptions', methods=['GET'])
def member_subscriptions(member_id):
    subscriptions = SubscriptionService(db.session).get_by_member(member_id)
    return jsonify({
        'success': True,
        'subscriptions': [_subscription_dict(s) for s in subscriptions],
    })


# Trials

@api_bp.route('/trials', methods=['POST'])
def book_trial():
    data = _payload()
    booking = TrialBookingService(db.session).book_trial(
        require_str(data, 'lead_id'),
        require_str(data, 'slot_id'),
        parse_date(data.get('date'), 'date'),
        is_exception=parse_bool(data.get('is_exception')),
    )
    return jsonify({'success': True, 'booking_id': booking.id, 'status': booking.status}), 201


@api_bp.route('/trials/<booking_id>/attended', methods=['POST'])
def trial_attended(booking_id):
    booking = TrialBookingService(db.session).mark_attended(booking_id)
    return jsonify({'success': True, 'booking': booking.to_dict()})


@api_bp.route('/trials/<booking_id>/no-show', methods=['POST'])
def trial_no_show(booking_id):
    booking = TrialBookingService(db.session).mark_no_show(booking_id)
    return jsonify({'success': True, 'booking': booking.to_dict()})


@api_bp.route('/trials/<booking_id>/cancel', methods=['POST'])
def trial_cancel(booking_id):
    booking = TrialBookingService(db.session).cancel_trial(booking_id)
    return jsonify({'success': True, 'booking': booking.to_dict()})


# Attendance

@api_bp.route('/attendance', methods=['POST'])
def mark_attendance():
    data = _payload()
    result = AttendanceService(db.session).mark_attendance(
        require_str(data, 'member_id'),
        require_str(data, 'slot_id'),
        parse_date(data.get('date'), 'date'),
        require_str(data, 'status'),
        notes=data.get('notes'),
    )
    return jsonify({
        'success': True,
        'record': result['record'].to_dict(),
        'created': result['created'],
        'classes_attended': result['classes_attended'],
    })


@api_bp.route('/attendance/summary', methods=['GET'])
def attendance_summary():
    args = request.args
    summary = AttendanceService(db.session).get_member_summary_for_period(
        require_str(args, 'member_id'),
        require_str(args, 'slot_id'),
        parse_date(args.get('period_start'), 'period_start'),
        parse_date(args.get('period_end'), 'period_end'),
    )
    return jsonify({'success': True, **summary})


@api_bp.route('/attendance/slot/<slot_id>', methods=['GET'])
def slot_attendance(slot_id):
    on_date = parse_date(request.args.get('date'), 'date')
    period_start = parse_date(request.args.get('period_start'), 'period_start', required=False) or on_date
    period_end = parse_date(request.args.get('period_end'), 'period_end', required=False) or on_date

    roster = AttendanceService(db.session).get_slot_attendance_with_members(
        slot_id, on_date, period_start, period_end
    )
    return jsonify({'success': True, 'date': on_date.isoformat(), 'members': roster})


@api_bp.route('/attendance/locks', methods=['POST'])
def set_attendance_lock():
    data = _payload()
    lock = AttendanceService(db.session).set_lock(
        require_str(data, 'slot_id'),
        parse_date(data.get('date'), 'date'),
        is_locked=parse_bool(data.get('is_locked'), default=True),
        locked_by=data.get('locked_by'),
    )
    return jsonify({'success': True, 'lock': lock.to_dict()})
