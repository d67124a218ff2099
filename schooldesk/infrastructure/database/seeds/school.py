# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School database seed data.

This module provides sample data for local development:
- One user per role
- Classrooms with their subjects
- Students, with a parent link for the first student
- An exam per classroom

Run with:
    python -m schooldesk.infrastructure.database.seeds.school
"""

import asyncio
import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schooldesk.core.rbac import Role
from schooldesk.infrastructure.database.models import (
    Classroom,
    Exam,
    ParentStudent,
    Student,
    Subject,
    User,
)

logger = logging.getLogger(__name__)


async def seed_users(session: AsyncSession) -> dict[str, User]:
    """Seed one user per role.

    Existing users (matched by email) are reused.

    Args:
        session: Database session.

    Returns:
        Users keyed by role value.
    """
    users_data = [
        ("admin@schooldesk.local", "Ada", "Admin", Role.ADMIN),
        ("head@schooldesk.local", "Hana", "Head", Role.HEAD_TEACHER),
        ("teacher@schooldesk.local", "Tomas", "Teacher", Role.TEACHER),
        ("accounts@schooldesk.local", "Alex", "Accounts", Role.ACCOUNTS),
        ("parent@schooldesk.local", "Priya", "Parent", Role.PARENT),
        ("student@schooldesk.local", "Sam", "Student", Role.STUDENT),
    ]

    users: dict[str, User] = {}
    for email, first_name, last_name, role in users_data:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            user = User(
                email=email,
                first_name=first_name,
                last_name=last_name,
                role=role.value,
            )
            session.add(user)
        users[role.value] = user

    await session.flush()
    logger.info("Seeded %d users", len(users))
    return users


async def seed_subjects(session: AsyncSession, teacher: User) -> list[Subject]:
    """Seed core subjects taught by the sample teacher."""
    subjects_data = [
        {"code": "MATH", "name": "Mathematics"},
        {"code": "ENG", "name": "English"},
        {"code": "SCI", "name": "Science"},
    ]

    subjects = []
    for data in subjects_data:
        result = await session.execute(select(Subject).where(Subject.code == data["code"]))
        subject = result.scalar_one_or_none()
        if subject is None:
            subject = Subject(code=data["code"], name=data["name"], teacher_id=teacher.id)
            session.add(subject)
        subjects.append(subject)

    await session.flush()
    logger.info("Seeded %d subjects", len(subjects))
    return subjects


async def seed_classrooms(
    session: AsyncSession,
    class_teacher: User,
    subjects: list[Subject],
) -> list[Classroom]:
    """Seed classrooms, each offering every seeded subject."""
    classrooms_data = [
        {"code": "G7-A", "name": "Grade 7 A"},
        {"code": "G7-B", "name": "Grade 7 B"},
    ]

    classrooms = []
    for data in classrooms_data:
        result = await session.execute(select(Classroom).where(Classroom.code == data["code"]))
        classroom = result.scalar_one_or_none()
        if classroom is None:
            classroom = Classroom(
                code=data["code"],
                name=data["name"],
                class_teacher_id=class_teacher.id,
                subjects=list(subjects),
            )
            session.add(classroom)
        classrooms.append(classroom)

    await session.flush()
    logger.info("Seeded %d classrooms", len(classrooms))
    return classrooms


async def seed_students(
    session: AsyncSession,
    classrooms: list[Classroom],
    student_user: User,
    parent_user: User,
    per_classroom: int = 5,
) -> list[Student]:
    """Seed students for each classroom.

    The first student is linked to the sample student login and to the
    sample parent.
    """
    students = []
    for classroom in classrooms:
        for index in range(1, per_classroom + 1):
            admission_number = f"{classroom.code}-{index:03d}"
            result = await session.execute(
                select(Student).where(Student.admission_number == admission_number)
            )
            student = result.scalar_one_or_none()
            if student is None:
                student = Student(
                    admission_number=admission_number,
                    first_name=f"Student{index}",
                    last_name=classroom.code.replace("-", ""),
                    email=f"{admission_number.lower()}@students.schooldesk.local",
                    classroom_id=classroom.id,
                )
                session.add(student)
            students.append(student)

    await session.flush()

    first = students[0]
    if first.user_id is None:
        first.user_id = student_user.id

    link = await session.get(ParentStudent, (parent_user.id, first.id))
    if link is None:
        session.add(ParentStudent(parent_id=parent_user.id, student_id=first.id))

    await session.flush()
    logger.info("Seeded %d students", len(students))
    return students


async def seed_exams(session: AsyncSession, classrooms: list[Classroom]) -> list[Exam]:
    """Seed a mid-term exam for each classroom."""
    exams = []
    for classroom in classrooms:
        name = f"Mid-term {classroom.code}"
        result = await session.execute(select(Exam).where(Exam.name == name))
        exam = result.scalar_one_or_none()
        if exam is None:
            exam = Exam(
                name=name,
                exam_type="midterm",
                term="term-1",
                academic_year="2025-2026",
                exam_date=date(2025, 10, 15),
                total_marks=100.0,
                classroom_id=classroom.id,
            )
            session.add(exam)
        exams.append(exam)

    await session.flush()
    logger.info("Seeded %d exams", len(exams))
    return exams


async def seed_school_database(session: AsyncSession) -> dict:
    """Seed the database with sample school data.

    Safe to run repeatedly; existing rows are reused.

    Args:
        session: Database session.

    Returns:
        Dictionary with seeded entities.
    """
    logger.info("Seeding school database...")

    users = await seed_users(session)
    subjects = await seed_subjects(session, users[Role.TEACHER.value])
    classrooms = await seed_classrooms(session, users[Role.TEACHER.value], subjects)
    students = await seed_students(
        session,
        classrooms,
        student_user=users[Role.STUDENT.value],
        parent_user=users[Role.PARENT.value],
    )
    exams = await seed_exams(session, classrooms)

    await session.commit()

    logger.info("School database seeding complete")

    return {
        "users": users,
        "subjects": subjects,
        "classrooms": classrooms,
        "students": students,
        "exams": exams,
    }


if __name__ == "__main__":
    import os

    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from schooldesk.core.config import get_settings

    async def main():
        database_url = os.environ.get("DATABASE_URL") or get_settings().database.url
        engine = create_async_engine(database_url)
        async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        async with async_session() as session:
            await seed_school_database(session)

        await engine.dispose()

    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
