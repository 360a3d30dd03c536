import pytest

from backend.core.errors import ConflictError, InvalidInputError, NotFoundError
from backend.models.user import User
from backend.routes.application_routes import (
    ApplyTutorRequest,
    DecisionRequest,
    application_status,
    apply_tutor,
    approve_tutor,
    deny_tutor,
    list_pending_applications,
)
from backend.routes.auth_routes import LoginRequest, SignupRequest, TutorProfileFields, login, signup


def _apply(db, background_tasks, user: User, **fields):
    fields.setdefault('name', user.full_name)
    fields.setdefault('age', 17)
    return apply_tutor(
        data=ApplyTutorRequest(**fields),
        background_tasks=background_tasks,
        current_user=user,
        db=db,
    )


def test_application_status_is_not_applied_by_default(make_student) -> None:
    result = application_status(current_user=make_student())

    assert result['status'] == 'not_applied'
    assert result['application'] is None
    assert result['userType'] == 'student'


def test_apply_tutor_requires_name_and_age(db, background_tasks, make_student) -> None:
    student = make_student()

    with pytest.raises(InvalidInputError) as exception_info:
        apply_tutor(data=ApplyTutorRequest(name='Sam'), background_tasks=background_tasks, current_user=student, db=db)

    assert exception_info.value.detail == 'Name and age required'


def test_apply_tutor_creates_pending_application_and_notifies_admin(
    db, background_tasks, make_student, make_admin,
) -> None:
    make_admin()
    student = make_student()

    result = _apply(db, background_tasks, student, subjects=['Math'], availability=['1 hour'])

    assert result['application'].status == 'pending'
    assert result['application'].applied_at is not None
    assert student.role == 'student'
    assert len(background_tasks.tasks) == 1
    assert background_tasks.tasks[0].args[0].subject == 'New Tutor Application: Sam Student'


def test_apply_tutor_rejects_duplicate_pending_application(db, background_tasks, make_student) -> None:
    student = make_student()
    _apply(db, background_tasks, student)

    with pytest.raises(ConflictError) as exception_info:
        _apply(db, background_tasks, student)

    assert exception_info.value.detail == 'Application already pending'


def test_approval_flips_role_to_tutor(db, background_tasks, make_student, make_admin) -> None:
    admin = make_admin()
    student = make_student()
    _apply(db, background_tasks, student, subjects=['Math', 'Physics'], bio='Loves algebra')
    assert student.role == 'student'

    result = approve_tutor(user_id=student.id, background_tasks=background_tasks, admin=admin, db=db)

    db.refresh(student)
    assert result['user'].user_type == 'tutor'
    assert student.role == 'tutor'
    assert student.application.status == 'approved'
    assert student.application.approved_at is not None
    assert student.subjects == ['Math', 'Physics']
    assert student.bio == 'Loves algebra'
    assert background_tasks.tasks[-1].args[0].recipients == ('student@example.com',)


def test_approval_keeps_profile_fields_captured_at_signup(db, background_tasks, make_student, make_admin) -> None:
    admin = make_admin()
    student = make_student(subjects=['Chemistry'], bio='Signup bio')
    _apply(db, background_tasks, student, subjects=['History'], bio='Application bio', experience='Peer tutor')

    approve_tutor(user_id=student.id, background_tasks=background_tasks, admin=admin, db=db)

    db.refresh(student)
    assert student.subjects == ['Chemistry']
    assert student.bio == 'Signup bio'
    assert student.experience == 'Peer tutor'


def test_approve_unknown_user_is_not_found(db, background_tasks, make_admin) -> None:
    with pytest.raises(NotFoundError) as exception_info:
        approve_tutor(user_id=999, background_tasks=background_tasks, admin=make_admin(), db=db)

    assert exception_info.value.detail == 'User not found'


def test_approve_requires_an_application(db, background_tasks, make_student, make_admin) -> None:
    student = make_student()

    with pytest.raises(NotFoundError) as exception_info:
        approve_tutor(user_id=student.id, background_tasks=background_tasks, admin=make_admin(), db=db)

    assert exception_info.value.detail == 'No tutor application on file'


def test_denied_applicant_keeps_student_role_and_can_log_in(
    db, background_tasks, make_student, make_admin,
) -> None:
    admin = make_admin()
    student = make_student()
    _apply(db, background_tasks, student)

    deny_tutor(
        user_id=student.id,
        background_tasks=background_tasks,
        data=DecisionRequest(reason='insufficient experience'),
        admin=admin,
        db=db,
    )

    db.refresh(student)
    assert student.application.status == 'denied'
    assert student.application.denial_reason == 'insufficient experience'
    assert student.application.denied_at is not None
    assert student.role == 'student'
    assert 'Feedback: insufficient experience' in background_tasks.tasks[-1].args[0].body

    result = login(data=LoginRequest(email='student@example.com', password='secret123'), db=db)
    assert result['user'].application_status == 'denied'


def test_decisions_only_apply_to_pending_applications(db, background_tasks, make_student, make_admin) -> None:
    admin = make_admin()
    student = make_student()
    _apply(db, background_tasks, student)
    deny_tutor(user_id=student.id, background_tasks=background_tasks, data=None, admin=admin, db=db)

    with pytest.raises(ConflictError) as exception_info:
        approve_tutor(user_id=student.id, background_tasks=background_tasks, admin=admin, db=db)

    assert exception_info.value.detail == 'Application is already denied'


def test_denied_applicant_may_reapply(db, background_tasks, make_student, make_admin) -> None:
    admin = make_admin()
    student = make_student()
    _apply(db, background_tasks, student)
    deny_tutor(
        user_id=student.id,
        background_tasks=background_tasks,
        data=DecisionRequest(reason='too young'),
        admin=admin,
        db=db,
    )

    result = _apply(db, background_tasks, student, age=18)

    assert result['application'].status == 'pending'
    assert result['application'].denial_reason is None
    assert result['application'].age == 18


def test_approved_tutor_cannot_reapply(db, background_tasks, make_tutor) -> None:
    with pytest.raises(ConflictError):
        _apply(db, background_tasks, make_tutor())


def test_list_pending_applications_returns_only_pending(db, background_tasks, make_student, make_admin) -> None:
    admin = make_admin()
    first = make_student('first@example.com')
    second = make_student('second@example.com')
    make_student('bystander@example.com')
    _apply(db, background_tasks, first)
    _apply(db, background_tasks, second)
    approve_tutor(user_id=second.id, background_tasks=background_tasks, admin=admin, db=db)

    result = list_pending_applications(admin=admin, db=db)

    assert [entry.user.email for entry in result['applications']] == ['first@example.com']
    assert result['applications'][0].application.status == 'pending'


def test_reapplied_subjects_become_the_tutor_profile_on_approval(db, background_tasks, make_admin) -> None:
    admin = make_admin()
    created = signup(
        data=SignupRequest(
            firstName='Tia',
            lastName='Tutor',
            email='tia@example.com',
            password='secret123',
            userType='tutor',
            tutorProfile=TutorProfileFields(subjects=['Math'], availability=['1hour']),
        ),
        background_tasks=background_tasks,
        db=db,
    )['user']
    applicant = db.get(User, created.id)
    deny_tutor(user_id=applicant.id, background_tasks=background_tasks, data=None, admin=admin, db=db)

    _apply(db, background_tasks, applicant, subjects=['Physics'], availability=['2hours'])
    approve_tutor(user_id=applicant.id, background_tasks=background_tasks, admin=admin, db=db)

    db.refresh(applicant)
    assert applicant.role == 'tutor'
    assert applicant.application.subjects == ['Physics']
    assert applicant.subjects == ['Physics']
    assert applicant.availability == ['2hours']
