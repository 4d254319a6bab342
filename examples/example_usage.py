"""Example: drive the service layer directly (no Flask).

Controllers stay thin; the rules live in the services.
"""

from src.gatepass.gatepass.container import build_container
from src.gatepass.gatepass.directory.memory_directory_repository import InMemoryDirectoryRepository
from src.gatepass.gatepass.directory.model import Student
from src.gatepass.gatepass.gate_passes.model import GatePassFilters


def main():
    directory = InMemoryDirectoryRepository(
        students=[Student(student_id=1, class_id=5, name="Aarav Sharma", admission_number="ADM-1001")]
    )
    container = build_container(backend="memory", directory=directory)
    roles = ["frontoffice"]

    gp = container.gate_pass_service.issue(
        actor_roles=roles, type="STUDENT", class_id=5, student_id=1, reason="Dentist appointment"
    )
    container.gate_pass_service.mark_out(actor_roles=roles, pass_id=gp.id)

    listing = container.gate_pass_query.list(GatePassFilters())
    for view in listing.rows:
        print(view.gate_pass.pass_no, view.display_name, view.gate_pass.status.value)
    print(listing.counts)


if __name__ == "__main__":
    main()
