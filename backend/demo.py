import os

import gradio as gr
import requests

# Your FastAPI backend running locally
BACKEND_URL = os.getenv("DOCCHAT_URL", "http://127.0.0.1:8000")


def _error_text(r: requests.Response) -> str:
    try:
        return f"Error {r.status_code}: {r.json().get('error', r.text)}"
    except ValueError:
        return f"Error {r.status_code}: {r.text}"


def _headers(token):
    return {"Authorization": f"Bearer {token}"} if token else {}


def login(email, password):
    try:
        r = requests.post(f"{BACKEND_URL}/api/auth/login", json={"email": email, "password": password})
        if r.status_code == 200:
            data = r.json()
            return data["token"], f"Logged in as {data['user']['name']}"
        return "", _error_text(r)
    except requests.RequestException as e:
        return "", f"Error: {e}"


def upload_doc(token, file):
    if file is None:
        return gr.update(), "Choose a file first."
    try:
        with open(file, "rb") as fh:
            files = {"file": (os.path.basename(file), fh)}
            r = requests.post(f"{BACKEND_URL}/api/documents", files=files, headers=_headers(token))
        if r.status_code != 200:
            return gr.update(), _error_text(r)
        data = r.json()
        status = f"{data['filename']}: {data['wordCount']} words, {data['charCount']} characters"
        return gr.update(choices=list_docs(token), value=data["documentId"]), status
    except requests.RequestException as e:
        return gr.update(), f"Error: {e}"


def list_docs(token):
    try:
        r = requests.get(f"{BACKEND_URL}/api/documents", headers=_headers(token))
    except requests.RequestException:
        return []
    if r.status_code != 200:
        return []
    return [(d["filename"], d["id"]) for d in r.json().get("documents", [])]


def ask_question(token, document_id, question):
    if not document_id:
        return "Select a document first."
    try:
        r = requests.post(
            f"{BACKEND_URL}/api/chat",
            json={"documentId": document_id, "question": question},
            headers=_headers(token),
        )
        if r.status_code == 200:
            data = r.json()
            return f"{data['answer']}\n\n(tokens used: {data['tokensUsed']})"
        return _error_text(r)
    except requests.RequestException as e:
        return f"Error: {e}"


def show_history(token, document_id):
    if not document_id:
        return ""
    try:
        r = requests.get(f"{BACKEND_URL}/api/chat/{document_id}", headers=_headers(token))
        if r.status_code != 200:
            return _error_text(r)
        return "\n\n".join(f"**{t['role']}**: {t['content']}" for t in r.json().get("history", []))
    except requests.RequestException as e:
        return f"Error: {e}"


def clear_history(token, document_id):
    if not document_id:
        return ""
    try:
        r = requests.post(f"{BACKEND_URL}/api/chat/clear/{document_id}", headers=_headers(token))
        return r.json().get("message", "") if r.status_code == 200 else _error_text(r)
    except requests.RequestException as e:
        return f"Error: {e}"


def build_demo() -> gr.Blocks:
    with gr.Blocks(title="DocChat Demo") as demo:
        gr.Markdown("# DocChat")
        gr.Markdown("Upload a document and ask questions about it using your local FastAPI backend.")
        token = gr.State("")

        with gr.Tab("Login"):
            email = gr.Textbox(label="Email")
            password = gr.Textbox(label="Password", type="password")
            login_btn = gr.Button("Login")
            login_status = gr.Textbox(label="Status")

        with gr.Tab("Upload Document"):
            file_input = gr.File(label="Upload PDF, DOC, DOCX, or TXT", type="filepath")
            upload_btn = gr.Button("Upload")
            upload_output = gr.Textbox(label="Status")

        with gr.Tab("Ask a Question"):
            document = gr.Dropdown(label="Document", choices=[])
            question = gr.Textbox(label="Enter your question")
            ask_btn = gr.Button("Get Answer")
            answer_output = gr.Textbox(label="Answer")
            history_btn = gr.Button("Show History")
            clear_btn = gr.Button("Clear History")
            history_output = gr.Markdown()

        login_btn.click(login, inputs=[email, password], outputs=[token, login_status]).then(
            lambda t: gr.update(choices=list_docs(t)), inputs=token, outputs=document
        )
        upload_btn.click(upload_doc, inputs=[token, file_input], outputs=[document, upload_output])
        ask_btn.click(ask_question, inputs=[token, document, question], outputs=answer_output)
        history_btn.click(show_history, inputs=[token, document], outputs=history_output)
        clear_btn.click(clear_history, inputs=[token, document], outputs=history_output)
    return demo


if __name__ == "__main__":
    build_demo().launch()
