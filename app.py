import streamlit as st
import os
import traceback

from main import analyze_submission, submit_assignment
from submission_records import export_submissions_csv
from utils.text_extraction import extract_text
from errors import ExtractionError

ACCEPTED_TYPES = ["pdf", "docx", "txt", "md", "csv"]


def render_submit_tab():
    st.header(" Submit Assignment")
    col1, col2 = st.columns(2)

    with col1:
        assignment_id = st.text_input("Assignment ID")
        submitted_by = st.text_input("Submitter User ID")
    with col2:
        student_name = st.text_input("Student Name (optional)")
        upload = st.file_uploader(" Submission File", type=ACCEPTED_TYPES, key="submit_file")

    if st.button("Submit", type="primary"):
        if not upload:
            st.error("Upload a submission file!")
            st.stop()
        if not assignment_id or not submitted_by:
            st.error("Assignment ID and submitter ID are required!")
            st.stop()

        with st.spinner("Uploading, checking relevance and scoring..."):
            try:
                ok, message, submission = submit_assignment(
                    file_bytes=upload.getvalue(),
                    filename=upload.name,
                    assignment_id=assignment_id.strip(),
                    submitted_by=submitted_by.strip(),
                    student_name=student_name or None,
                )
            except Exception as e:
                st.error(f"Unexpected error: {str(e)}")
                st.code(traceback.format_exc())
                st.stop()

        if not ok:
            st.error(message)
            return

        st.success(f"{message} → {submission.id} ({submission.status})")
        col1, col2 = st.columns(2)
        with col1:
            if submission.ai_checker_results:
                st.metric("Human-authorship score", f"{submission.ai_checker_results.score:.0f}",
                          submission.ai_checker_results.confidence)
            else:
                st.info("AI check: not available")
        with col2:
            if submission.plagiarism_results:
                st.metric("Originality", f"{submission.plagiarism_results.score:.0f}")
            else:
                st.info("Plagiarism check: not available")
        st.write(f"Stored file: {submission.file_url}")


def render_feedback_tab():
    st.header(" Feedback Analysis")
    upload = st.file_uploader(" Submission File", type=ACCEPTED_TYPES, key="feedback_file")
    pasted = st.text_area("...or paste the submission text", height=200)

    if st.button("Analyze", type="primary"):
        text = pasted
        if upload:
            try:
                text = extract_text(upload.getvalue(), upload.name)
            except ExtractionError as e:
                st.error(f"Could not read file: {e}")
                st.stop()
        if not text.strip():
            st.error("Provide submission content to analyze!")
            st.stop()

        with st.spinner("Asking the grading model..."):
            ok, message, analysis = analyze_submission(text)

        if not ok:
            st.error(message)
            return

        feedback = analysis.suggested_overall_feedback
        st.subheader("Strengths")
        st.write(feedback.strengths or "None noted")
        st.subheader("Areas for Improvement")
        st.write(feedback.improvements or "None noted")
        st.subheader("Action Items")
        st.write(feedback.action_items or "None noted")

        st.subheader(f"Inline Comments ({len(analysis.suggested_inline_comments)})")
        for comment in analysis.suggested_inline_comments:
            quote = text[comment.start_index:comment.end_index]
            st.markdown(f"> {quote}\n\n{comment.text}")


def render_export_tab():
    st.header(" Gradebook Export")
    assignment_id = st.text_input("Assignment ID", key="export_assignment")
    output_dir = st.text_input("Output Directory", value="exports")

    if st.button("Export CSV"):
        if not assignment_id:
            st.error("Assignment ID is required!")
            st.stop()
        try:
            csv_path = export_submissions_csv(assignment_id.strip(), output_dir=output_dir)
        except Exception as e:
            st.error(f"Export failed: {str(e)}")
            st.stop()

        if csv_path and os.path.exists(csv_path):
            st.success(f"CSV saved: {csv_path}")
            with open(csv_path, "rb") as f:
                st.download_button(
                    "Download CSV",
                    f.read(),
                    file_name=os.path.basename(csv_path),
                    mime="text/csv"
                )
        else:
            st.warning("No submissions found for this assignment.")


def main():
    st.set_page_config(page_title="Assignment Grader", page_icon="📚", layout="wide")
    st.title("📚 Assignment Submissions")

    submit_tab, feedback_tab, export_tab = st.tabs(["Submit", "Feedback", "Export"])
    with submit_tab:
        render_submit_tab()
    with feedback_tab:
        render_feedback_tab()
    with export_tab:
        render_export_tab()


if __name__ == "__main__":
    main()
