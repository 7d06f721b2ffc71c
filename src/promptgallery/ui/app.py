"""Gradio UI for Prompt Gallery.

One screen: a generate panel, the gallery and a search panel.  The gallery
and the search results are the same component built by
:func:`create_image_list`, parameterised by list name.
"""

import logging

import gradio as gr

from promptgallery.core.config import config

from .handlers import (
    disable_button,
    enable_button,
    generate_image,
    load_gallery,
    load_more,
    refresh_gallery,
    search_images,
    select_image,
)
from .models import GALLERY_LIST, NO_SELECTION_TEXT, SEARCH_LIST, UIState

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_ui() -> gr.Blocks:
    """Create the Gradio UI.

    Returns:
        Gradio Blocks app
    """
    app = gr.Blocks(title="AI Image Gallery")

    with app:
        # Session state - one instance per user
        ui_state = gr.State(UIState())

        gr.Markdown("# AI Image Gallery")

        create_generate_panel(ui_state)

        gr.Markdown("## Gallery")
        gallery = create_image_list(GALLERY_LIST, ui_state)

        gr.Markdown("## Search Images")
        search = create_image_list(SEARCH_LIST, ui_state)

        # One-time initial gallery load
        app.load(
            fn=load_gallery,
            inputs=[ui_state],
            outputs=[gallery["gallery"], gallery["load_more_btn"], ui_state],
        )

        gallery["action_btn"].click(
            fn=disable_button,
            outputs=[gallery["action_btn"]],
        ).then(
            fn=refresh_gallery,
            inputs=[ui_state],
            outputs=[gallery["gallery"], gallery["load_more_btn"], ui_state],
        ).then(
            fn=enable_button,
            outputs=[gallery["action_btn"]],
        )

        search["action_btn"].click(
            fn=disable_button,
            outputs=[search["action_btn"]],
        ).then(
            fn=search_images,
            inputs=[search["term"], ui_state],
            outputs=[search["gallery"], search["load_more_btn"], ui_state],
        ).then(
            fn=enable_button,
            outputs=[search["action_btn"]],
        )

    return app


def create_generate_panel(ui_state):
    """Create the prompt box, generate button and last-image display.

    Args:
        ui_state: UI state component
    """
    gr.Markdown("## Generate Image")

    with gr.Row():
        prompt_input = gr.Textbox(
            label="Prompt",
            placeholder="Enter a prompt to generate an image",
            scale=4,
        )
        generate_btn = gr.Button("Generate", variant="primary", interactive=False, scale=1)

    image_output = gr.Image(label="Generated image", type="filepath", height=300)

    # Generate is only enabled for a non-blank prompt
    prompt_input.change(
        fn=lambda prompt: gr.update(interactive=bool(prompt and prompt.strip())),
        inputs=[prompt_input],
        outputs=[generate_btn],
    )

    generate_btn.click(
        fn=disable_button,
        outputs=[generate_btn],
    ).then(
        fn=generate_image,
        inputs=[prompt_input, ui_state],
        outputs=[image_output, ui_state],
    ).then(
        fn=lambda prompt: gr.update(interactive=bool(prompt and prompt.strip())),
        inputs=[prompt_input],
        outputs=[generate_btn],
    )


def create_image_list(list_name: str, ui_state) -> dict:
    """Create one paginated image grid with a load-more button.

    The search variant adds a term box; its action button runs a search.
    The gallery variant's action button returns to the first page, served
    from the page memo while it is fresh.

    Args:
        list_name: GALLERY_LIST or SEARCH_LIST
        ui_state: UI state component

    Returns:
        Dictionary of components for event wiring
    """
    components: dict = {}

    with gr.Row():
        if list_name == SEARCH_LIST:
            components["term"] = gr.Textbox(
                label="Search term",
                placeholder="Enter search term",
                scale=4,
            )
            components["action_btn"] = gr.Button("Search", variant="secondary", scale=1)
        else:
            components["action_btn"] = gr.Button("First page", size="sm", scale=1)

    components["gallery"] = gr.Gallery(
        label="Images",
        columns=5,
        height=500,
        object_fit="cover",
        show_label=False,
    )
    components["selection"] = gr.Markdown(NO_SELECTION_TEXT)
    components["load_more_btn"] = gr.Button("Load More", visible=False)

    def _on_select(state: UIState, evt: gr.SelectData):
        return select_image(evt, list_name, state)

    async def _on_load_more(state: UIState):
        return await load_more(list_name, state)

    components["gallery"].select(
        fn=_on_select,
        inputs=[ui_state],
        outputs=[components["selection"], ui_state],
    )

    components["load_more_btn"].click(
        fn=disable_button,
        outputs=[components["load_more_btn"]],
    ).then(
        fn=_on_load_more,
        inputs=[ui_state],
        outputs=[components["gallery"], components["load_more_btn"], ui_state],
    ).then(
        fn=enable_button,
        outputs=[components["load_more_btn"]],
    )

    return components


def main():
    """Main entry point for the application."""
    logger.info("Starting Prompt Gallery UI...")
    logger.info(f"Service URL: {config.api_url}")

    app = create_ui()

    logger.info(f"Launching Gradio UI on {config.ui_server_name}:{config.ui_server_port}")

    app.queue().launch(
        server_name=config.ui_server_name,
        server_port=config.ui_server_port,
        share=config.ui_share,
        show_error=True,
        inbrowser=False,
    )


if __name__ == "__main__":
    main()
