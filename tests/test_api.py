from careerhub.models.user import ROLE_ADMIN, ROLE_SCHOOL, ROLE_STUDENT
from careerhub.services.exam_allocator import ExamQuestionAllocator


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_register_login_and_me(client, factory):
    school = factory.school()
    payload = {
        "full_name": "Tran Minh",
        "email": "minh@school.com",
        "password": "secret123",
        "school_id": str(school.id),
    }

    registered = client.post("/api/v1/auth/register", json=payload)
    assert registered.status_code == 201
    assert registered.json()["data"]["user"]["role"] == ROLE_STUDENT

    duplicate = client.post("/api/v1/auth/register", json=payload)
    assert duplicate.status_code == 409
    assert duplicate.json()["success"] is False

    login = client.post("/api/v1/auth/login", json={"email": "minh@school.com", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["data"]["access_token"]

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["data"]["email"] == "minh@school.com"


def test_wrong_password_is_rejected(client, factory):
    user = factory.user(password="secret123")
    response = client.post("/api/v1/auth/login", json={"email": user.email, "password": "nope"})
    assert response.status_code == 401
    assert response.json()["message"] == "Incorrect email or password"


def test_admin_routes_reject_other_roles(client, factory, auth_headers):
    student = factory.user(ROLE_STUDENT, school=factory.school())
    response = client.get("/api/v1/careers", headers=auth_headers(student))
    assert response.status_code == 200

    response = client.post("/api/v1/careers", json={"code": "DEV", "name": "Developer"}, headers=auth_headers(student))
    assert response.status_code == 403
    assert response.json() == {"success": False, "message": "Insufficient role", "data": None, "meta": None}

    assert client.get("/api/v1/careers").status_code in (401, 403)


def test_list_pagination_meta(client, factory, auth_headers):
    admin = factory.user(ROLE_ADMIN)
    for index in range(3):
        factory.career(f"Career {index}")

    body = client.get("/api/v1/careers?page=2&limit=2", headers=auth_headers(admin)).json()
    assert len(body["data"]) == 1
    assert body["meta"] == {"total": 3, "page": 2, "limit": 2, "skip": 2, "totalPages": 2}

    lenient = client.get("/api/v1/careers?page=abc&limit=-5", headers=auth_headers(admin)).json()
    assert lenient["meta"]["page"] == 1
    assert lenient["meta"]["limit"] == 10


def test_validation_errors_use_envelope(client, factory, auth_headers):
    admin = factory.user(ROLE_ADMIN)
    response = client.post("/api/v1/exams", json={"title": "No rows", "distributions": []}, headers=auth_headers(admin))
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_generate_exam_questions_endpoint(client, factory, auth_headers):
    admin = factory.user(ROLE_ADMIN)
    headers = auth_headers(admin)
    for _ in range(2):
        factory.question("EASY")

    created = client.post("/api/v1/exams", json={
        "title": "Aptitude",
        "distributions": [{"quantity": 2, "easy_count": 2, "points_per_question": 5}],
    }, headers=headers)
    assert created.status_code == 201
    exam_id = created.json()["data"]["id"]

    generated = client.post(f"/api/v1/exams/{exam_id}/questions/generate", headers=headers)
    assert generated.status_code == 201
    assert generated.json()["data"] == {"generated": 2}

    again = client.post(f"/api/v1/exams/{exam_id}/questions/generate", headers=headers)
    assert again.status_code == 409

    listed = client.get(f"/api/v1/exams/{exam_id}/questions", headers=headers).json()["data"]
    assert [row["order_index"] for row in listed] == [1, 2]


def test_generate_shortage_returns_400(client, factory, auth_headers):
    admin = factory.user(ROLE_ADMIN)
    factory.question("HARD")
    exam = factory.exam([{"quantity": 2, "hard_count": 2}])

    response = client.post(f"/api/v1/exams/{exam.id}/questions/generate", headers=auth_headers(admin))

    assert response.status_code == 400
    assert "Need 2, available 1" in response.json()["message"]


def test_license_issue_and_school_active_careers(client, factory, auth_headers):
    school = factory.school()
    admin = factory.user(ROLE_ADMIN)
    school_user = factory.user(ROLE_SCHOOL, school=school)
    career = factory.career("Engineer")
    order = factory.order(school, [career])

    issued = client.post(
        "/api/v1/licenses",
        json={"order_id": str(order.id), "month_rental": 12},
        headers=auth_headers(admin),
    )
    assert issued.status_code == 201
    assert issued.json()["meta"]["month_rental"] == 12

    active = client.get("/api/v2/schools/careers", headers=auth_headers(school_user)).json()
    assert active["meta"]["total"] == 1
    assert active["data"][0]["career"]["id"] == str(career.id)
    assert active["data"][0]["license"]["status"] == "ACTIVE"


def test_student_sits_exam_without_seeing_answers(client, db, factory, auth_headers):
    school = factory.school()
    student = factory.user(ROLE_STUDENT, school=school)
    factory.question("EASY")
    exam = factory.exam([{"quantity": 1, "easy_count": 1}])
    ExamQuestionAllocator(db).generate(exam.id)
    headers = auth_headers(student)

    available = client.get("/api/v2/students/exams", headers=headers).json()
    assert [row["id"] for row in available["data"]] == [str(exam.id)]

    started = client.post(f"/api/v2/students/exams/{exam.id}/start", headers=headers)
    assert started.status_code == 201
    data = started.json()["data"]
    question = data["questions"][0]["question"]
    assert all("is_correct" not in opt for opt in question["options"])

    wrong = next(opt["id"] for opt in question["options"] if opt["option_key"] == "B")
    submitted = client.post(
        f"/api/v2/students/exams/attempts/{data['attempt']['id']}/submit",
        json={"answers": [{"question_id": question["id"], "answer_data": wrong}]},
        headers=headers,
    )
    assert submitted.status_code == 200
    assert submitted.json()["data"]["status"] == "GRADED"
    assert submitted.json()["data"]["total_score"] == 0


def test_unlicensed_exam_cannot_be_started(client, db, factory, auth_headers):
    student = factory.user(ROLE_STUDENT, school=factory.school())
    factory.question("EASY")
    exam = factory.exam([{"quantity": 1, "easy_count": 1}], career=factory.career())
    ExamQuestionAllocator(db).generate(exam.id)

    response = client.post(f"/api/v2/students/exams/{exam.id}/start", headers=auth_headers(student))
    assert response.status_code == 403


def test_upload_criteria_attachment(client, factory, auth_headers):
    admin = factory.user(ROLE_ADMIN)
    criteria = factory.criteria(factory.career())

    response = client.post(
        f"/api/v1/careers/criteria/{criteria.id}/media?kind=attachment",
        files={"file": ("syllabus.pdf", b"%PDF-1.4 content", "application/pdf")},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    attachments = response.json()["data"]["attachments"]
    assert len(attachments) == 1
    assert attachments[0].startswith(f"criteria/{criteria.id}/attachments/")


def test_student_reports_learning_progress(client, factory, auth_headers):
    student = factory.user(ROLE_STUDENT, school=factory.school())
    career = factory.career()
    criteria = factory.criteria(career)
    headers = auth_headers(student)

    plain = client.post(
        "/api/v2/students/learning",
        content=f"{career.id},{criteria.id},120,30,in_progress",
        headers={**headers, "Content-Type": "text/plain"},
    )
    assert plain.status_code == 200
    assert plain.json()["data"]["progress_percent"] == 25
    assert plain.json()["data"]["status"] == "IN_PROGRESS"

    done = client.post(
        "/api/v2/students/learning",
        json={
            "career_id": str(career.id),
            "criteria_id": str(criteria.id),
            "current_time": 120,
            "last_watched_position": 120,
            "status": "COMPLETED",
        },
        headers=headers,
    )
    assert done.json()["data"]["progress_percent"] == 100

    completed = client.get(f"/api/v2/students/learning/completed?career_id={career.id}", headers=headers).json()
    assert [row["criteria_id"] for row in completed["data"]] == [str(criteria.id)]

    missing = client.post(
        "/api/v2/students/learning",
        content=f"{career.id},{criteria.id}",
        headers={**headers, "Content-Type": "text/plain"},
    )
    assert missing.status_code == 400
    assert missing.json()["message"].startswith("Missing required fields")

    bad_json = client.post("/api/v2/students/learning", json={"status": "COMPLETED"}, headers=headers)
    assert bad_json.status_code == 400


def test_career_evaluation_flow(client, factory, auth_headers):
    school = factory.school()
    school_class = factory.school_class(school)
    career = factory.career()
    logic = factory.criteria(career, "Logic", 0)
    design = factory.criteria(career, "Design", 1)
    factory.class_criteria(school_class, career, [logic, design])
    teacher = auth_headers(factory.user(ROLE_SCHOOL, school=school))
    student = auth_headers(factory.user(ROLE_STUDENT, school=school, school_class=school_class))
    ids = {"class_id": str(school_class.id), "career_id": str(career.id)}

    weights = client.post(
        "/api/v2/schools/career-evaluation-config/weights",
        json={**ids, "weights": [
            {"criteria_id": str(logic.id), "weight": 50},
            {"criteria_id": str(design.id), "weight": 50},
        ]},
        headers=teacher,
    )
    assert weights.status_code == 200
    stored = client.get("/api/v2/schools/career-evaluation-config/weights", params=ids, headers=teacher).json()
    assert stored["data"]["is_valid"] is True

    thresholds = client.post(
        "/api/v2/schools/career-evaluation-config/thresholds",
        json={**ids, "very_suitable_min": 160, "suitable_min": 100},
        headers=teacher,
    )
    assert thresholds.json()["data"]["max_score"] == 200

    submitted = client.post(
        "/api/v2/students/career-evaluations/submit",
        json={**ids, "scores": [
            {"criteria_id": str(logic.id), "score": 80},
            {"criteria_id": str(design.id), "score": 60},
        ]},
        headers=student,
    )
    assert submitted.status_code == 201
    data = submitted.json()["data"]
    assert data["evaluation_result"] == "SUITABLE"
    assert data["breakdown"]["final_score"] == 140

    results = client.get("/api/v2/students/career-evaluations/results", headers=student).json()
    assert len(results["data"][0]["detailed_scores"]) == 2

    stats = client.get("/api/v2/schools/career-evaluation-config/statistics", params=ids, headers=teacher).json()
    assert stats["data"]["summary"]["suitable"]["count"] == 1

    out_of_range = client.post(
        "/api/v2/students/career-evaluations/submit",
        json={**ids, "scores": [{"criteria_id": str(logic.id), "score": 120}]},
        headers=student,
    )
    assert out_of_range.status_code == 400
