"""
Job Board — command-line consumer of the application core.
Lists, posts and applies to jobs against the local store or the remote backend.
"""

import argparse
import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from backends.memory import InMemoryCollaborator
from config.settings import settings
from core.context import AppContext
from core.factory import build_collaborator, create_context
from models.job import JobType, ResumePreference
from tools.file_handler import read_resume_file
from tools.text_extractor import html_to_text


def print_job(job, favorite: bool = False) -> None:
    star = "★" if favorite else " "
    company = job.company_name or "—"
    print(f" {star} [{job.id}] {job.title} @ {company} — {job.location} ({job.job_type.value})")
    if job.salary:
        print(f"      💰 {job.salary}")
    print(f"      📅 {job.posted_date[:10]} · {len(job.applications)} candidatura(s) · currículo: {job.resume_preference.value}")


async def cmd_jobs(ctx: AppContext, args) -> int:
    if args.mine:
        jobs = ctx.employer_jobs()
    elif args.favorites:
        jobs = ctx.favorite_jobs()
    else:
        jobs = ctx.search(args.term, args.location, args.type)
    print(f"📋 {len(jobs)} vaga(s)")
    for job in jobs:
        print_job(job, ctx.is_favorite(job.id))
    return 0


async def cmd_show(ctx: AppContext, args) -> int:
    job = ctx.get_job(args.job_id)
    if job is None:
        print(f"❌ Vaga não encontrada: {args.job_id}")
        return 1
    print_job(job, ctx.is_favorite(job.id))
    if job.description:
        print(f"\n{job.description}")
    session = ctx.session
    if session is not None and session.id == job.employer_id:
        print(f"\n👥 Candidaturas ({len(job.applications)}):")
        for application in job.applications:
            resume = "arquivo" if application.resume_file else "texto" if application.resume_text else "—"
            print(f"   • {application.full_name} <{application.email}> {application.phone} · {resume} · {application.date[:10]}")
    return 0


async def cmd_post(ctx: AppContext, args) -> int:
    draft = {
        "title": args.title,
        "location": args.location,
        "jobType": args.type,
        "companyName": args.company or (ctx.session.company_name if ctx.session else None),
        "salary": args.salary,
        "description": args.description,
        "resumePreference": args.resume_preference,
    }
    job = await ctx.add_job({k: v for k, v in draft.items() if v is not None})
    if job is None:
        print(f"❌ {ctx.error or 'Vaga não publicada.'}")
        return 1
    print(f"✅ Vaga publicada: {job.id}")
    return 0


async def cmd_delete(ctx: AppContext, args) -> int:
    if not await ctx.delete_job(args.job_id):
        print(f"❌ Não foi possível excluir {args.job_id}")
        return 1
    print(f"🗑️  Vaga excluída: {args.job_id}")
    return 0


async def cmd_apply(ctx: AppContext, args) -> int:
    data = {"fullName": args.name, "email": args.email, "phone": args.phone}
    if args.resume_text:
        data["resumeText"] = args.resume_text
    if args.resume_file:
        try:
            data["resumeFile"] = read_resume_file(args.resume_file)
        except (OSError, ValueError) as e:
            print(f"❌ Currículo inválido: {e}")
            return 1
    application = await ctx.add_application(args.job_id, data)
    if application is None:
        print(f"❌ {ctx.error or 'Candidatura não enviada.'}")
        return 1
    print(f"✅ Candidatura enviada: {application.id}")
    return 0


async def cmd_register(ctx: AppContext, args) -> int:
    if not await ctx.register(args.company, args.email, args.password):
        print(f"❌ {ctx.error}")
        return 1
    print(f"✅ Bem-vindo, {ctx.session.company_name}!")
    return 0


async def cmd_login(ctx: AppContext, args) -> int:
    if not await ctx.login(args.email, args.password):
        print(f"❌ {ctx.error}")
        return 1
    print(f"✅ Logado como {ctx.session.company_name} <{ctx.session.email}>")
    return 0


async def cmd_logout(ctx: AppContext, args) -> int:
    await ctx.logout()
    print("👋 Sessão encerrada.")
    return 0


async def cmd_favorite(ctx: AppContext, args) -> int:
    if ctx.get_job(args.job_id) is None:
        print(f"❌ Vaga não encontrada: {args.job_id}")
        return 1
    now_favorite = ctx.toggle_favorite(args.job_id)
    print("★ Favoritada." if now_favorite else "☆ Removida dos favoritos.")
    return 0


async def cmd_feedback(ctx: AppContext, args) -> int:
    board = ctx.feedback_board
    if args.message:
        if board.user is None and not board.register(args.name or "", args.email or "", args.password or ""):
            print(f"❌ {board.error}")
            return 1
        entry = await board.submit(args.type, args.message)
        if entry is None:
            print(f"❌ {board.error}")
            return 1
        print(f"✅ Feedback enviado por {entry.name}.")
    for entry in board.entries[:args.limit]:
        print(f" • [{entry.type.value}] {entry.name}: {entry.message} ({entry.date[:10]})")
    return 0


async def cmd_news(ctx: AppContext, args) -> int:
    for article in ctx.news:
        print(f" • {article.title} — {article.source}")
        if article.description:
            print(f"   {article.description}")
        if article.link:
            print(f"   🔗 {article.link}")
    return 0


async def cmd_about(ctx: AppContext, args) -> int:
    print(html_to_text(ctx.about))
    for guide in ctx.guides:
        print(f"\n📘 {guide.title}")
        for section in guide.sections:
            print(f"   {section.heading}")
            for tip in section.tips:
                print(f"     • {tip}")
    return 0


async def cmd_watch(ctx: AppContext, args) -> int:
    """Print the job list whenever it changes, until interrupted."""
    def on_change() -> None:
        print(f"🔄 {len(ctx.jobs)} vaga(s); mais recente: {ctx.jobs[0].title if ctx.jobs else '—'}")

    unsubscribe = ctx.subscribe(on_change)
    mode = "polling" if getattr(ctx.strategy, "polling", False) else "tempo real"
    print(f"👀 Acompanhando vagas ({ctx.mode}, {mode}). Ctrl+C para sair.")
    on_change()
    try:
        if args.minutes:
            await asyncio.sleep(args.minutes * 60)
        else:
            await asyncio.Event().wait()
    finally:
        unsubscribe()
    return 0


COMMANDS = {
    "jobs": cmd_jobs,
    "show": cmd_show,
    "post": cmd_post,
    "delete": cmd_delete,
    "apply": cmd_apply,
    "register": cmd_register,
    "login": cmd_login,
    "logout": cmd_logout,
    "favorite": cmd_favorite,
    "feedback": cmd_feedback,
    "news": cmd_news,
    "about": cmd_about,
    "watch": cmd_watch,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Job Board — vagas, empregadores e candidaturas",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py jobs --term dev --location SP
  python run.py register "Acme" rh@acme.com segredo123
  python run.py post --title "Dev Python" --location "São Paulo" --resume-preference text
  python run.py apply job-1 --name Ana --email ana@x.com --phone 11999990000 --resume-text "..."
  python run.py --backend memory watch --minutes 1
        """,
    )
    parser.add_argument(
        "--backend",
        choices=["auto", "local", "firebase", "memory"],
        default="auto",
        help="auto: Firebase when FIREBASE_API_KEY/FIREBASE_PROJECT_ID are set, local otherwise",
    )
    parser.add_argument(
        "--as",
        dest="credentials",
        nargs=2,
        metavar=("EMAIL", "PASSWORD"),
        help="Log in before running the command (remote sessions are not kept between runs)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    jobs = sub.add_parser("jobs", help="List and filter jobs")
    jobs.add_argument("--term", default="", help="Title or company contains")
    jobs.add_argument("--location", default="")
    jobs.add_argument("--type", choices=[t.value for t in JobType], default=None)
    jobs.add_argument("--mine", action="store_true", help="Only the logged-in employer's jobs")
    jobs.add_argument("--favorites", action="store_true")

    show = sub.add_parser("show", help="Show one job (and its applications, for its owner)")
    show.add_argument("job_id")

    post = sub.add_parser("post", help="Publish a job as the logged-in employer")
    post.add_argument("--title", required=True)
    post.add_argument("--location", required=True)
    post.add_argument("--type", choices=[t.value for t in JobType], default=JobType.EMPLOYMENT.value)
    post.add_argument("--company", default=None)
    post.add_argument("--salary", default=None)
    post.add_argument("--description", default=None)
    post.add_argument(
        "--resume-preference", choices=[p.value for p in ResumePreference], default=ResumePreference.FILE.value
    )

    delete = sub.add_parser("delete", help="Delete a job")
    delete.add_argument("job_id")

    apply = sub.add_parser("apply", help="Apply to a job")
    apply.add_argument("job_id")
    apply.add_argument("--name", required=True)
    apply.add_argument("--email", required=True)
    apply.add_argument("--phone", required=True)
    apply.add_argument("--resume-file", default=None, metavar="PATH")
    apply.add_argument("--resume-text", default=None)

    register = sub.add_parser("register", help="Create an employer account")
    register.add_argument("company")
    register.add_argument("email")
    register.add_argument("password")

    login = sub.add_parser("login", help="Log in as an employer")
    login.add_argument("email")
    login.add_argument("password")

    sub.add_parser("logout", help="Log out")

    favorite = sub.add_parser("favorite", help="Toggle a favorite job")
    favorite.add_argument("job_id")

    feedback = sub.add_parser("feedback", help="Read or post on the feedback board")
    feedback.add_argument("--type", default="sugestao", choices=["elogio", "critica", "duvida", "sugestao"])
    feedback.add_argument("--message", default=None)
    feedback.add_argument("--name", default=None)
    feedback.add_argument("--email", default=None)
    feedback.add_argument("--password", default=None)
    feedback.add_argument("--limit", type=int, default=20)

    sub.add_parser("news", help="Show news articles")
    sub.add_parser("about", help="Show the about page and education guides")

    watch = sub.add_parser("watch", help="Follow job list updates")
    watch.add_argument("--minutes", type=float, default=None, help="Stop after N minutes")

    return parser


def make_context(backend: str) -> AppContext:
    if backend == "memory":
        return create_context(settings, collaborator=InMemoryCollaborator())
    if backend == "firebase":
        if not settings.remote_enabled:
            print("❌ FIREBASE_API_KEY and FIREBASE_PROJECT_ID must be set in .env for --backend firebase.")
            sys.exit(1)
        return create_context(settings, collaborator=build_collaborator(settings))
    if backend == "local":
        settings.firebase_api_key = ""
    return create_context(settings)


async def run(args) -> int:
    async with make_context(args.backend) as ctx:
        ctx.alerts.subscribe(lambda message: print(f"⚠️  {message}"))
        if args.credentials and args.command not in ("login", "register"):
            if not await ctx.login(*args.credentials):
                print(f"❌ {ctx.error}")
                return 1
        return await COMMANDS[args.command](ctx, args)


def main():
    """Main entry point for the job board CLI."""
    args = build_parser().parse_args()
    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        print("\n\n⛔ Interrompido.")
        sys.exit(1)


if __name__ == "__main__":
    main()
