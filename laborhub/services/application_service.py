from sqlalchemy.exc import IntegrityError

from laborhub.errors import Conflict, InvalidStateTransition, NotFound, Unauthorized, ValidationError
from laborhub.models import ApplicationStatus, Job, JobApplication, Order
from laborhub.models.base import utcnow
from laborhub.services.base import LifecycleService, coerce_id
from laborhub.services.events import EventType, LifecycleEvent


class ApplicationService(LifecycleService):
    """Registry of worker applications; at most one live application per (worker, job)."""

    def _active_application(self, worker_id, job_id):
        return (
            self.session.query(JobApplication)
            .filter(JobApplication.worker_id == worker_id, JobApplication.job_id == job_id)
            .filter(JobApplication.status != ApplicationStatus.WITHDRAWN)
            .first()
        )

    def get(self, application_id):
        application = self.session.get(JobApplication, coerce_id(application_id, "Application ID"))
        if not application:
            raise NotFound("Application not found.")
        return application

    def submit(self, worker_id, job_id):
        job_id = coerce_id(job_id, "Job ID")
        with self.unit_of_work():
            job = self.session.get(Job, job_id)
            if not job:
                raise NotFound("Job not found.")
            if self._active_application(worker_id, job.id):
                raise Conflict("You have already applied to this job.")

            application = JobApplication(
                job_id=job.id,
                worker_id=worker_id,
                applied_date=utcnow(),
                status=ApplicationStatus.PENDING,
            )
            self.session.add(application)
            try:
                self.session.flush()
            except IntegrityError as exc:
                self.logger.warning("Duplicate application race for worker %s on job %s", worker_id, job.id)
                raise Conflict("You have already applied to this job.") from exc

            self.commit(
                [
                    LifecycleEvent(
                        user_id=job.customer_id,
                        type=EventType.APPLICATION_RECEIVED,
                        title="New application",
                        message=f'A worker applied to "{job.title}".',
                        related_id=application.id,
                        related_type="APPLICATION",
                    )
                ]
            )
        self.logger.info("Application %s submitted by worker %s for job %s", application.id, worker_id, job_id)
        return application

    def decide(self, application_id, customer_id, decision):
        decision = (decision or "").strip().upper()
        if decision not in ApplicationStatus.DECISIONS:
            raise ValidationError("Status must be APPROVED or REJECTED.")
        application_id = coerce_id(application_id, "Application ID")

        with self.unit_of_work():
            application = self.locked(JobApplication, application_id)
            if not application:
                raise NotFound("Application not found.")
            if application.job.customer_id != customer_id:
                raise Unauthorized("Only the job owner can decide on this application.")
            if application.status != ApplicationStatus.PENDING:
                raise InvalidStateTransition(
                    f"Only pending applications can be {decision.lower()}.",
                    current_state=application.status,
                )

            if not self.compare_and_set(
                application,
                [JobApplication.status == ApplicationStatus.PENDING],
                {"status": decision},
            ):
                raise InvalidStateTransition(
                    "Application was decided concurrently.", current_state=application.status
                )

            approved = decision == ApplicationStatus.APPROVED
            self.commit(
                [
                    LifecycleEvent(
                        user_id=application.worker_id,
                        type=EventType.APPLICATION_APPROVED if approved else EventType.APPLICATION_REJECTED,
                        title="Application approved" if approved else "Application rejected",
                        message=f'Your application for "{application.job.title}" was {decision.lower()}.',
                        related_id=application.id,
                        related_type="APPLICATION",
                    )
                ]
            )
        self.logger.info("Application %s %s by customer %s", application_id, decision, customer_id)
        return application

    def withdraw(self, application_id, worker_id):
        application_id = coerce_id(application_id, "Application ID")
        with self.unit_of_work():
            application = self.locked(JobApplication, application_id)
            if not application:
                raise NotFound("Application not found.")
            if application.worker_id != worker_id:
                raise Unauthorized("Unauthorized to withdraw this application.")
            if application.status == ApplicationStatus.WITHDRAWN:
                raise InvalidStateTransition("Application is already withdrawn.", current_state=application.status)
            if self.session.query(Order.id).filter_by(job_application_id=application.id).first():
                raise InvalidStateTransition(
                    "An order already exists for this application.", current_state=application.status
                )

            if not self.compare_and_set(
                application,
                [JobApplication.status != ApplicationStatus.WITHDRAWN],
                {"status": ApplicationStatus.WITHDRAWN},
            ):
                raise InvalidStateTransition("Application is already withdrawn.", current_state=application.status)

            self.commit(
                [
                    LifecycleEvent(
                        user_id=application.job.customer_id,
                        type=EventType.APPLICATION_WITHDRAWN,
                        title="Application withdrawn",
                        message=f'A worker withdrew their application for "{application.job.title}".',
                        related_id=application.id,
                        related_type="APPLICATION",
                    )
                ]
            )
        self.logger.info("Application %s withdrawn by worker %s", application_id, worker_id)
        return application

    def list_for_worker(self, worker_id, include_withdrawn=False):
        query = self.session.query(JobApplication).filter(JobApplication.worker_id == worker_id)
        if not include_withdrawn:
            query = query.filter(JobApplication.status != ApplicationStatus.WITHDRAWN)
        return query.order_by(JobApplication.applied_date.desc(), JobApplication.id.desc()).all()

    def list_for_customer(self, customer_id):
        return (
            self.session.query(JobApplication)
            .join(Job, Job.id == JobApplication.job_id)
            .filter(Job.customer_id == customer_id)
            .filter(JobApplication.status != ApplicationStatus.WITHDRAWN)
            .order_by(JobApplication.applied_date.desc(), JobApplication.id.desc())
            .all()
        )

    def list_for_job(self, job_id, customer_id):
        job = self.session.get(Job, coerce_id(job_id, "Job ID"))
        if not job:
            raise NotFound("Job not found.")
        if job.customer_id != customer_id:
            raise Unauthorized("Only the job owner can view its applications.")
        return (
            job.applications.filter(JobApplication.status != ApplicationStatus.WITHDRAWN)
            .order_by(JobApplication.applied_date.desc(), JobApplication.id.desc())
            .all()
        )
