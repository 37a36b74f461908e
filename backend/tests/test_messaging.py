"""Tests for admin-teacher conversations and class messages."""
from fastapi import status

from erms.models import EnrollmentStatus, Message, StudentTeacherMessage, UserRole

from conftest import bearer, create_class, create_user, enroll


class TestConversations:
    """One-to-one conversations between an admin and a teacher."""

    def _open(self, client, admin_headers, teacher):
        response = client.post(
            "/messages/conversations", json={"teacher_user_id": teacher.user_id}, headers=admin_headers
        )
        assert response.status_code == status.HTTP_200_OK
        return response.json()

    def test_open_conversation_once(self, client, admin_headers, teacher):
        first = self._open(client, admin_headers, teacher)
        second = self._open(client, admin_headers, teacher)

        assert first["id"] == second["id"]
        assert first["other_name"] == "Maria Santos"
        assert first["last_message"] is None

    def test_teacher_opens_same_conversation(self, client, admin_user, admin_headers, teacher, teacher_headers):
        opened = self._open(client, admin_headers, teacher)

        response = client.post(
            "/messages/conversations", json={"admin_user_id": admin_user.id}, headers=teacher_headers
        )
        assert response.json()["id"] == opened["id"]
        assert response.json()["other_name"] == "Admin"

    def test_missing_target(self, client, admin_headers):
        response = client.post("/messages/conversations", json={}, headers=admin_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "teacher_user_id is required"

    def test_target_must_have_the_right_role(self, client, student, admin_headers, teacher_headers):
        response = client.post(
            "/messages/conversations", json={"teacher_user_id": student.user_id}, headers=admin_headers
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Teacher not found"

        response = client.post("/messages/conversations", json={"admin_user_id": 9999}, headers=teacher_headers)
        assert response.json()["detail"] == "Admin not found"

    def test_exchange_and_read(self, client, admin_headers, teacher, teacher_headers):
        conversation = self._open(client, admin_headers, teacher)
        url = f"/messages/conversations/{conversation['id']}"

        sent = client.post(url, json={"content": "  Please submit grades by Friday. "}, headers=admin_headers)
        assert sent.status_code == status.HTTP_201_CREATED
        assert sent.json()["content"] == "Please submit grades by Friday."
        assert sent.json()["sender_name"] == "Admin"
        assert sent.json()["is_mine"] is True

        assert client.get("/messages/unread-count", headers=teacher_headers).json() == {"unread_count": 1}
        assert client.get("/messages/unread-count", headers=admin_headers).json() == {"unread_count": 0}

        listed = client.get("/messages/conversations", headers=teacher_headers).json()
        assert listed[0]["unread_count"] == 1
        assert listed[0]["last_message"] == "Please submit grades by Friday."

        detail = client.get(url, headers=teacher_headers).json()
        assert [m["is_mine"] for m in detail["messages"]] == [False]
        assert detail["unread_count"] == 0
        assert client.get("/messages/unread-count", headers=teacher_headers).json() == {"unread_count": 0}

    def test_reply_uses_teacher_name(self, client, admin_headers, teacher, teacher_headers):
        conversation = self._open(client, admin_headers, teacher)

        reply = client.post(
            f"/messages/conversations/{conversation['id']}", json={"content": "Noted."}, headers=teacher_headers
        )
        assert reply.json()["sender_name"] == "Maria Santos"

    def test_blank_message(self, client, admin_headers, teacher):
        conversation = self._open(client, admin_headers, teacher)

        response = client.post(
            f"/messages/conversations/{conversation['id']}", json={"content": "   "}, headers=admin_headers
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_non_participant(self, client, db_session, admin_headers, teacher, other_teacher):
        conversation = self._open(client, admin_headers, teacher)

        response = client.get(
            f"/messages/conversations/{conversation['id']}", headers=bearer(db_session, other_teacher.user)
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"] == "You are not a participant in this conversation"

    def test_unknown_conversation(self, client, admin_headers):
        response = client.get("/messages/conversations/missing", headers=admin_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Conversation not found"

    def test_students_cannot_use_conversations(self, client, student_headers):
        response = client.get("/messages/conversations", headers=student_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_contacts(self, client, db_session, admin_user, admin_headers, teacher, other_teacher, teacher_headers):
        create_user(db_session, "former.teacher@school.edu", role=UserRole.teacher, is_active=False)

        teachers = client.get("/messages/teachers", headers=admin_headers).json()
        assert [c["email"] for c in teachers] == ["other.teacher@school.edu", "teacher@school.edu"]

        admins = client.get("/messages/admins", headers=teacher_headers).json()
        assert admins == [{"user_id": admin_user.id, "name": "Registrar", "email": "admin@school.edu"}]

        assert client.get("/messages/teachers", headers=teacher_headers).status_code == status.HTTP_403_FORBIDDEN


class TestClassMessages:
    """Students message the teacher of a class they are approved in."""

    def test_student_to_teacher(self, client, db_session, group_class, student, enrollment, student_headers,
                                teacher_headers):
        sent = client.post(
            f"/student/messages/{group_class.id}", json={"content": "Is the quiz open-book?"}, headers=student_headers
        )
        assert sent.status_code == status.HTTP_201_CREATED
        assert sent.json()["sender_name"] == "Juan Dela Cruz"

        assert client.get("/teacher/student-messages/unread-count", headers=teacher_headers).json() == {
            "unread_count": 1
        }
        threads = client.get("/teacher/student-messages/classes", headers=teacher_headers).json()
        assert threads[0]["student_number"] == "2024-0001"
        assert threads[0]["last_message"] == "Is the quiz open-book?"
        assert threads[0]["unread_count"] == 1

        url = f"/teacher/student-messages/{group_class.id}/{student.id}"
        assert client.post(f"{url}/read", headers=teacher_headers).json() == {"marked": 1}
        assert client.post(f"{url}/read", headers=teacher_headers).json() == {"marked": 0}

        reply = client.post(url, json={"content": "No, closed book."}, headers=teacher_headers)
        assert reply.status_code == status.HTTP_201_CREATED
        assert db_session.query(StudentTeacherMessage).count() == 2

    def test_student_reads_replies(self, client, group_class, student, enrollment, student_headers, teacher_headers):
        client.post(
            f"/teacher/student-messages/{group_class.id}/{student.id}",
            json={"content": "Please see me after class."},
            headers=teacher_headers,
        )

        assert client.get("/student/messages/unread-count", headers=student_headers).json() == {"unread_count": 1}
        classes = client.get("/student/messages/classes", headers=student_headers).json()
        assert classes[0]["teacher_name"] == "Maria Santos"
        assert classes[0]["unread_count"] == 1

        messages = client.get(f"/student/messages/{group_class.id}", headers=student_headers).json()
        assert [m["content"] for m in messages] == ["Please see me after class."]
        assert messages[0]["is_mine"] is False

        assert client.post(f"/student/messages/{group_class.id}/read", headers=student_headers).json() == {
            "marked": 1
        }
        assert client.get("/student/messages/unread-count", headers=student_headers).json() == {"unread_count": 0}

    def test_threads_are_per_student(self, client, db_session, group_class, student, other_student, enrollment,
                                     student_headers):
        enroll(db_session, group_class, other_student)
        client.post(f"/student/messages/{group_class.id}", json={"content": "Hello"}, headers=student_headers)

        other_messages = client.get(
            f"/student/messages/{group_class.id}", headers=bearer(db_session, other_student.user)
        ).json()
        assert other_messages == []

    def test_pending_student_cannot_message(self, client, db_session, group_class, student, student_headers):
        enroll(db_session, group_class, student, status=EnrollmentStatus.pending)

        response = client.post(
            f"/student/messages/{group_class.id}", json={"content": "Hi"}, headers=student_headers
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_teacher_needs_enrolled_student(self, client, group_class, other_student, enrollment, teacher_headers):
        response = client.post(
            f"/teacher/student-messages/{group_class.id}/{other_student.id}",
            json={"content": "Hello"},
            headers=teacher_headers,
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Student is not enrolled in this class"

    def test_teacher_of_another_class(self, client, db_session, group_class, student, enrollment, other_teacher):
        response = client.get(
            f"/teacher/student-messages/{group_class.id}/{student.id}",
            headers=bearer(db_session, other_teacher.user),
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_archived_classes_drop_out_of_teacher_threads(self, client, db_session, teacher, student,
                                                          teacher_headers):
        archived = create_class(db_session, teacher, subject="Networking", code="NET001")
        enroll(db_session, archived, student)
        client.post(f"/teacher/classes/{archived.id}/archive", headers=teacher_headers)

        assert client.get("/teacher/student-messages/classes", headers=teacher_headers).json() == []

    def test_conversation_rows_untouched(self, client, db_session, group_class, enrollment, student_headers):
        client.post(f"/student/messages/{group_class.id}", json={"content": "Hi"}, headers=student_headers)
        assert db_session.query(Message).count() == 0
