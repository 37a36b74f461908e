"""Tests for classes, enrollment and class materials."""
from datetime import timedelta

from fastapi import status

from erms.classes.service import CLASS_CODE_ALPHABET, generate_class_code, purge_archived_classes
from erms.database import utcnow
from erms.models import ClassEnrollment, EnrollmentStatus, GroupClass, QuizKind

from conftest import bearer, create_class, create_quiz, enroll, post_material

CLASS_DATA = {
    "class_name": "IT 102 - B",
    "subject": "Data Structures",
    "class_start_time": "10:00:00",
    "class_end_time": "11:30:00",
}


class TestClassCode:
    def test_code_shape(self):
        for _ in range(20):
            code = generate_class_code()
            assert len(code) == 6
            assert all(ch in CLASS_CODE_ALPHABET for ch in code)


class TestTeacherClasses:
    """Creating and managing classes."""

    def test_create_class(self, client, teacher_headers):
        response = client.post("/teacher/classes", json=CLASS_DATA, headers=teacher_headers)

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert len(body["class_code"]) == 6
        assert body["teacher_name"] == "Maria Santos"
        assert body["student_count"] == 0

    def test_end_before_start(self, client, teacher_headers):
        data = dict(CLASS_DATA, class_end_time="09:00:00")

        response = client.post("/teacher/classes", json=data, headers=teacher_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Class end time must be after start time"

    def test_duplicate_subject(self, client, group_class, teacher_headers):
        data = dict(CLASS_DATA, subject="programming 1 ")

        response = client.post("/teacher/classes", json=data, headers=teacher_headers)
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["detail"] == "You already have a class with this subject"

    def test_duplicate_time_slot(self, client, group_class, teacher_headers):
        data = dict(CLASS_DATA, class_start_time="08:00:00", class_end_time="09:30:00")

        response = client.post("/teacher/classes", json=data, headers=teacher_headers)
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["detail"] == "You already have a class at this time slot"

    def test_other_teacher_may_reuse_subject(self, client, db_session, group_class, other_teacher):
        response = client.post(
            "/teacher/classes", json=dict(CLASS_DATA, subject="Programming 1"),
            headers=bearer(db_session, other_teacher.user),
        )
        assert response.status_code == status.HTTP_201_CREATED

    def test_list_counts_students(self, client, db_session, group_class, student, other_student, teacher_headers):
        enroll(db_session, group_class, student)
        enroll(db_session, group_class, other_student, status=EnrollmentStatus.pending)

        classes = client.get("/teacher/classes", headers=teacher_headers).json()

        assert len(classes) == 1
        assert classes[0]["student_count"] == 1
        assert classes[0]["pending_count"] == 1

    def test_other_teacher_cannot_manage(self, client, db_session, group_class, other_teacher):
        response = client.get(f"/teacher/classes/{group_class.id}", headers=bearer(db_session, other_teacher.user))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_update_class(self, client, group_class, teacher_headers):
        response = client.put(
            f"/teacher/classes/{group_class.id}", json={"class_name": "IT 101 - Z"}, headers=teacher_headers
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["class_name"] == "IT 101 - Z"

    def test_delete_class(self, client, db_session, group_class, teacher_headers):
        class_id = group_class.id

        response = client.delete(f"/teacher/classes/{class_id}", headers=teacher_headers)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        db_session.expire_all()
        assert db_session.get(GroupClass, class_id) is None

    def test_archive_and_restore(self, client, group_class, teacher_headers):
        archived = client.post(
            f"/teacher/classes/{group_class.id}/archive", json={"retention_days": 7}, headers=teacher_headers
        )
        assert archived.status_code == status.HTTP_200_OK
        assert archived.json()["archived_at"] is not None
        assert archived.json()["auto_delete_at"] is not None

        active = client.get("/teacher/classes?archived=false", headers=teacher_headers).json()
        assert active == []

        restored = client.post(f"/teacher/classes/{group_class.id}/restore", headers=teacher_headers)
        assert restored.json()["archived_at"] is None

    def test_restore_unarchived(self, client, group_class, teacher_headers):
        response = client.post(f"/teacher/classes/{group_class.id}/restore", headers=teacher_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_purge_only_expired(self, db_session, teacher):
        now = utcnow()
        expired = create_class(db_session, teacher, subject="Old", code="OLD001")
        expired.archived_at = now - timedelta(days=40)
        expired.auto_delete_at = now - timedelta(days=10)
        kept = create_class(db_session, teacher, subject="Recent", code="NEW001")
        kept.archived_at = now
        kept.auto_delete_at = now + timedelta(days=30)
        db_session.commit()

        assert purge_archived_classes(db_session) == 1
        remaining = [c.class_code for c in db_session.query(GroupClass).all()]
        assert remaining == ["NEW001"]


class TestEnrollment:
    """Joining by class code and teacher approval."""

    def test_join_creates_pending_request(self, client, group_class, student_headers):
        response = client.post("/student/classes/join", json={"class_code": " abc123 "}, headers=student_headers)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["status"] == "pending"
        assert response.json()["group_class"]["id"] == group_class.id

    def test_invalid_code(self, client, student_headers):
        response = client.post("/student/classes/join", json={"class_code": "ZZZ999"}, headers=student_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Invalid class code"

    def test_join_twice_while_pending(self, client, group_class, student_headers):
        client.post("/student/classes/join", json={"class_code": "ABC123"}, headers=student_headers)
        response = client.post("/student/classes/join", json={"class_code": "ABC123"}, headers=student_headers)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["detail"] == "Your join request is already pending"

    def test_join_when_already_enrolled(self, client, enrollment, student_headers):
        response = client.post("/student/classes/join", json={"class_code": "ABC123"}, headers=student_headers)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["detail"] == "You are already enrolled in this class"

    def test_denied_student_can_ask_again(self, client, db_session, group_class, student, student_headers):
        denied = enroll(db_session, group_class, student, status=EnrollmentStatus.denied)

        response = client.post("/student/classes/join", json={"class_code": "ABC123"}, headers=student_headers)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["enrollment_id"] == denied.id
        assert db_session.query(ClassEnrollment).count() == 1

    def test_archived_class_cannot_be_joined(self, db_session, client, group_class, student_headers):
        group_class.archived_at = utcnow()
        db_session.commit()

        response = client.post("/student/classes/join", json={"class_code": "ABC123"}, headers=student_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_teacher_approves_and_denies(self, client, db_session, group_class, student, other_student,
                                         teacher_headers):
        first = enroll(db_session, group_class, student, status=EnrollmentStatus.pending)
        second = enroll(db_session, group_class, other_student, status=EnrollmentStatus.pending)
        base = f"/teacher/classes/{group_class.id}/students"

        approved = client.post(f"{base}/{first.id}/approve", headers=teacher_headers)
        denied = client.post(f"{base}/{second.id}/deny", headers=teacher_headers)

        assert approved.json()["status"] == "approved"
        assert denied.json()["status"] == "denied"
        listed = client.get(base, headers=teacher_headers).json()
        assert {e["student_number"]: e["status"] for e in listed} == {
            "2024-0001": "approved",
            "2024-0002": "denied",
        }

    def test_enrollment_from_another_class(self, client, db_session, teacher, group_class, student, teacher_headers):
        other_class = create_class(db_session, teacher, subject="Networking", code="NET001")
        foreign = enroll(db_session, other_class, student, status=EnrollmentStatus.pending)

        response = client.post(
            f"/teacher/classes/{group_class.id}/students/{foreign.id}/approve", headers=teacher_headers
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_remove_student(self, client, db_session, group_class, enrollment, teacher_headers):
        response = client.delete(
            f"/teacher/classes/{group_class.id}/students/{enrollment.id}", headers=teacher_headers
        )
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert db_session.query(ClassEnrollment).count() == 0

    def test_student_class_list_and_leave(self, client, db_session, group_class, enrollment, student_headers):
        listed = client.get("/student/classes", headers=student_headers).json()
        assert [c["group_class"]["class_name"] for c in listed] == ["IT 101 - A"]

        response = client.delete(f"/student/classes/{group_class.id}", headers=student_headers)
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert client.get("/student/classes", headers=student_headers).json() == []


class TestClassAccess:
    """Only approved students of an active class see its materials."""

    def test_not_enrolled(self, client, group_class, student_headers):
        response = client.get(f"/student/classes/{group_class.id}/materials", headers=student_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"] == "You are not enrolled in this class"

    def test_pending(self, client, db_session, group_class, student, student_headers):
        enroll(db_session, group_class, student, status=EnrollmentStatus.pending)

        response = client.get(f"/student/classes/{group_class.id}/materials", headers=student_headers)
        assert response.json()["detail"] == "Your join request is still pending approval from the teacher"

    def test_denied(self, client, db_session, group_class, student, student_headers):
        enroll(db_session, group_class, student, status=EnrollmentStatus.denied)

        response = client.get(f"/student/classes/{group_class.id}/materials", headers=student_headers)
        assert response.json()["detail"] == "Your join request was denied"

    def test_archived(self, client, db_session, group_class, enrollment, student_headers):
        group_class.archived_at = utcnow()
        db_session.commit()

        response = client.get(f"/student/classes/{group_class.id}/materials", headers=student_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"] == "This class has been archived"


class TestMaterials:
    """Posting quizzes to classes and reading them as a student."""

    def test_post_quiz_to_class(self, client, group_class, quiz, teacher_headers):
        response = client.post(
            f"/teacher/classes/{group_class.id}/materials",
            json={"quiz_id": quiz.id, "time_limit": 30},
            headers=teacher_headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["material_type"] == "quiz"
        assert body["title"] == "Chapter 1 Quiz"
        assert body["time_limit"] == 30

    def test_post_twice(self, client, group_class, quiz, quiz_material, teacher_headers):
        response = client.post(
            f"/teacher/classes/{group_class.id}/materials", json={"quiz_id": quiz.id}, headers=teacher_headers
        )
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_cannot_post_another_teachers_quiz(self, client, db_session, group_class, other_teacher,
                                                teacher_headers):
        foreign = create_quiz(db_session, other_teacher)

        response = client.post(
            f"/teacher/classes/{group_class.id}/materials", json={"quiz_id": foreign.id}, headers=teacher_headers
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delete_material(self, client, group_class, quiz_material, teacher_headers):
        response = client.delete(
            f"/teacher/classes/{group_class.id}/materials/{quiz_material.id}", headers=teacher_headers
        )
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert client.get(f"/teacher/classes/{group_class.id}/materials", headers=teacher_headers).json() == []

    def test_student_sees_materials(self, client, group_class, quiz_material, student_headers):
        in_class = client.get(f"/student/classes/{group_class.id}/materials", headers=student_headers).json()
        everywhere = client.get("/student/materials", headers=student_headers).json()

        assert [m["id"] for m in in_class] == [quiz_material.id]
        assert [m["id"] for m in everywhere] == [quiz_material.id]
        assert in_class[0]["class_name"] == "IT 101 - A"
        assert in_class[0]["submission_id"] is None

    def test_quiz_for_student_hides_answers(self, client, quiz_material, student_headers):
        response = client.get(f"/student/materials/{quiz_material.id}/quiz", headers=student_headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["already_submitted"] is False
        assert len(body["questions"]) == 3
        assert all("correct_answer" not in q for q in body["questions"])

    def test_assignment_material(self, db_session, client, teacher, group_class, enrollment, student_headers):
        assignment = create_quiz(db_session, teacher, kind=QuizKind.assignment, questions=[])
        material = post_material(db_session, group_class, assignment)

        listed = client.get(f"/student/classes/{group_class.id}/materials", headers=student_headers).json()
        assert listed[0]["id"] == material.id
        assert listed[0]["material_type"] == "assignment"
