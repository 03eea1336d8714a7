from __future__ import annotations

from dataclasses import dataclass

from .database.connection import DBConfig, DatabaseConnection
from .deductions.mysql_deduction_repository import MySQLDeductionRepository
from .deductions.repository import DeductionRepository
from .deductions.service import DeductionService
from .lessons.mysql_lesson_repository import MySQLLessonRepository
from .lessons.repository import LessonRepository
from .lessons.service import LessonService
from .packages.mysql_package_repository import MySQLPackageRepository
from .packages.repository import PackageRepository
from .packages.service import PackageService
from .payments.mysql_payment_repository import MySQLPaymentRepository
from .payments.repository import PaymentRepository
from .payments.service import PaymentService
from .purchases.mysql_purchase_repository import MySQLPurchaseRepository
from .purchases.repository import PurchaseRepository
from .purchases.service import PurchaseService
from .reports.service import ReportService
from .students.mysql_student_repository import MySQLStudentRepository
from .students.repository import StudentRepository
from .students.service import StudentService


@dataclass(frozen=True)
class Container:
    students_repo: StudentRepository
    lessons_repo: LessonRepository
    payments_repo: PaymentRepository
    packages_repo: PackageRepository
    purchases_repo: PurchaseRepository
    deductions_repo: DeductionRepository

    student_service: StudentService
    lesson_service: LessonService
    payment_service: PaymentService
    package_service: PackageService
    purchase_service: PurchaseService
    deduction_service: DeductionService
    report_service: ReportService


def wire(
    *,
    students_repo: StudentRepository,
    lessons_repo: LessonRepository,
    payments_repo: PaymentRepository,
    packages_repo: PackageRepository,
    purchases_repo: PurchaseRepository,
    deductions_repo: DeductionRepository,
) -> Container:
    """Build the services on top of any set of repositories."""
    return Container(
        students_repo=students_repo,
        lessons_repo=lessons_repo,
        payments_repo=payments_repo,
        packages_repo=packages_repo,
        purchases_repo=purchases_repo,
        deductions_repo=deductions_repo,
        student_service=StudentService(students_repo),
        lesson_service=LessonService(lessons_repo, students_repo),
        payment_service=PaymentService(payments_repo, lessons_repo, students_repo, packages_repo),
        package_service=PackageService(packages_repo, students_repo, lessons_repo, payments_repo),
        purchase_service=PurchaseService(purchases_repo),
        deduction_service=DeductionService(deductions_repo),
        report_service=ReportService(
            lessons=lessons_repo,
            payments=payments_repo,
            purchases=purchases_repo,
            students=students_repo,
            packages=packages_repo,
        ),
    )


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    return wire(
        students_repo=MySQLStudentRepository(conn),
        lessons_repo=MySQLLessonRepository(conn),
        payments_repo=MySQLPaymentRepository(conn),
        packages_repo=MySQLPackageRepository(conn),
        purchases_repo=MySQLPurchaseRepository(conn),
        deductions_repo=MySQLDeductionRepository(conn),
    )
